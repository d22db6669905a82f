import sys

from canvaspkg.cli import main

sys.exit(main())
