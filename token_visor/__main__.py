import sys

from token_visor.cli import main

sys.exit(main())
