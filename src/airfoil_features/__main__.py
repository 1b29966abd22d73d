import sys

from airfoil_features.cli import main

sys.exit(main())
