import sys

from spamcount_mail.cli import main

sys.exit(main())
