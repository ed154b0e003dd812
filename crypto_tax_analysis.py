"""Command-line launcher: python crypto_tax_analysis.py [seed]"""
import sys

from cryptotax import config as cfg
from cryptotax import run

if __name__ == "__main__":
    run(seed=int(sys.argv[1]) if len(sys.argv) > 1 else cfg.SEED_OFFSET)
