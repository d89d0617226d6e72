"""Detection of sandwich and front-running MEV attacks on Solana transactions."""

__version__ = "0.2.0"