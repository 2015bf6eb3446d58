import sys

from ipsw_lite.cli import main

sys.exit(main())
