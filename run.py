"""
Root entry point for the Moodcast forecaster.
Bootstraps the moodcast package and runs the main orchestrator.
"""

import sys
import os

# Ensure the project root is in python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from moodcast.main import main

if __name__ == "__main__":
    sys.exit(main())
