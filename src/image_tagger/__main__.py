"""
Main module for running image_tagger as a package.
Enables 'python -m image_tagger' execution.
"""

import sys

from image_tagger.cli import main

if __name__ == '__main__':
    sys.exit(main())
