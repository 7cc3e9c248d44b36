"""Allow ``python -m shardcache``."""
import sys

from .cli import main

sys.exit(main())
