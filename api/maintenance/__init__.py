"""Background sweeps: item expiry/drop and session-token eviction."""
