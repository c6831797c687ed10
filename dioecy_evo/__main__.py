import sys

from dioecy_evo.cli import main

sys.exit(main())
