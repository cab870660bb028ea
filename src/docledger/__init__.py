"""docledger: key-value ledger records with IPFS-backed attachments."""
