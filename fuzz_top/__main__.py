import sys

from fuzz_top.app import main

sys.exit(main())
