#!/usr/bin/env python3
"""
Local deployment launcher script.

Deploys the token pair and AMM instances to a local development node using the
localhost.yaml configuration, then starts the downstream server if configured.
"""

import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dexdeploy.runner.orchestrator import main


if __name__ == "__main__":
    sys.argv = ["dexdeploy", "--config", "configs/localhost.yaml", "--network", "localhost"]

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nDeployment stopped by user.")
        sys.exit(0)
    except Exception as e:
        print(f"Error running deployment: {e}")
        sys.exit(1)
