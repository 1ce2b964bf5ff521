"""HTTP front-end for the AssetLedger core."""
