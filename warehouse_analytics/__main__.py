import sys

from warehouse_analytics.cli import main

sys.exit(main())
