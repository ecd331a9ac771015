from __future__ import annotations

import sys

from sourcemap_overlay.launcher import main

if __name__ == "__main__":
    sys.exit(main())
