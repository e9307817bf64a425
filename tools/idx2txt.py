#!/usr/bin/env python
import sys

from dictidx.tools.idx2txt import main


if __name__ == "__main__":
    sys.exit(main())
