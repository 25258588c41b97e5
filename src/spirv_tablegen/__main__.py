import sys

from .tablegen import main

sys.exit(main())
