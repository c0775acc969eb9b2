"""Technical-analysis computation engine.

This package contains pure computation with no I/O dependencies
(no network, file, or exchange access). Callers hand it ordered candle
arrays plus explicit configuration and read derived series, pivots,
divergences, channels and trendlines back synchronously.
"""
