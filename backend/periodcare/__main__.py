import sys

from periodcare.bootstrap import main

sys.exit(main())
