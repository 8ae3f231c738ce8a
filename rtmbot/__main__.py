import sys

from rtmbot.cli import main

sys.exit(main())
