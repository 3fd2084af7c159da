import sys

from exprlab.cli import main

sys.exit(main())
