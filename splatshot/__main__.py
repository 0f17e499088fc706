import sys

from splatshot.cli import main

sys.exit(main())
