import sys

from housecup.cli import main

sys.exit(main())
