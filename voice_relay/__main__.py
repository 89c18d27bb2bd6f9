import sys

from voice_relay.cli import main

sys.exit(main())
