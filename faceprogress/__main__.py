import logging

from .simulation import print_summary, run_simulation

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    summary = run_simulation(days=21, capture_every=2, seed=42)
    print_summary(summary)
