import sys

from postfilter.cli import main


sys.exit(main())
