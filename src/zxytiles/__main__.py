import sys

from zxytiles.cli.main import main

sys.exit(main())
