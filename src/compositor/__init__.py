"""
Synthesizes complete aircraft surveillance records from the partial SBS-1 messages that ADS-B and MLAT receivers emit,
and releases them to a consumer in rate-limited batches.
"""
