import sys

from ergoclient.cli import main

sys.exit(main())
