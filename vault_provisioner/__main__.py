import sys

from vault_provisioner.cli import main

sys.exit(main())
