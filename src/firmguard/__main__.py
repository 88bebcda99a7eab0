import sys

from src.firmguard.cli import main

sys.exit(main())
