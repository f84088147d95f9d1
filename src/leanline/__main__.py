"""Allow running as python -m leanline."""

from leanline.run import main

main()
