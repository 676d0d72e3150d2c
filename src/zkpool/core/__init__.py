"""Note, Merkle, proof-assembly and orchestration logic."""
