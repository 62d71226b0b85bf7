#!/usr/bin/env python3
"""Entry point for python -m tests."""

import sys

from tests import main

sys.exit(main())
