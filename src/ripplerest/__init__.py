"""ripplerest - trust line queries and TrustSet submission for the Ripple ledger."""

__version__ = "0.1.0"
