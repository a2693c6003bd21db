"""
Sensor Module Test Suite

Structure:
- unit/: Unit tests for individual components (geo, batcher, relay, supervisor, transports)
- integration/: Sampling, batching and relaying wired together on the in-process hub
"""
