"""
ImageTo-ICO - Application Entry Point
Convert images to multi-size Windows ICO files.
"""
import sys
import os

# Add app directory to path
app_dir = os.path.dirname(os.path.abspath(__file__))
if app_dir not in sys.path:
    sys.path.insert(0, app_dir)

from imageto_ico.cli import main


if __name__ == '__main__':
    sys.exit(main())
