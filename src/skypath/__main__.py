import sys

from skypath.cli import main

sys.exit(main())
