"""
Preprocess the DISTANT datasets into cached, styled map layers.

    python scripts/preprocess_layers.py --config src/JSONs/distant_config.json
    python scripts/preprocess_layers.py --datasets hindell freer --skip-sync --strict
"""
import sys
from distant_pipeline import main

if __name__ == "__main__":
    sys.exit(main())
