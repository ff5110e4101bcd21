"""
Workspace API

Versioned, asynchronous contract for talking to a source-control workspace,
plus an offline simulator of that contract driven by captured snapshots.

Key components:
- common/: Path value types shared by every API version
- core/: Exceptions and logging utilities
- config/: Configuration management
- snapshot/: Snapshot serialization, hashing and validation
- v1/: Version 1 model, operation contract and mock engine
- tools/: The mock_data_generator capture tool
"""

__version__ = "0.1.0"
