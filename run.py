#!/usr/bin/env python
"""
Sprite Editor - Quick Launch Script

Usage:
    python run.py
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from sprite_editor.main import main

if __name__ == '__main__':
    print("=" * 60)
    print("Sprite Editor - Pixel Animation Editor")
    print("=" * 60)
    print("Starting application...")
    print()

    try:
        main()
    except ImportError as e:
        print("error: missing necessary dependencies")
        print(f"details: {e}")
        print()
        print("please run the following command to install dependencies:")
        print("    pip install -e .")
        sys.exit(1)
