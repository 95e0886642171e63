#!/usr/bin/env python3
"""
Complex YCSB workload runner

Examples:
    python scripts/run_workload.py -P workloads/complex_mixed.properties --threads 4
    python scripts/run_workload.py --phase load -p recordcount=10000 -p operationcount=0
"""

import os
import sys

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from complex_ycsb.runner import main


if __name__ == "__main__":
    sys.exit(main())
