import sys

from reward_verifier.cli import main

sys.exit(main())
