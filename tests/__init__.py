"""
Test package for ECGGuard.

Covers:
- Unit tests for buffer, conditioning, gate, scorer and contracts
- Integration tests for the orchestrator and the threaded session
"""
