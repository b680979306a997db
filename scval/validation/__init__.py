"""Source bundle validation against Solidity compiler metadata.

``ValidationService`` is the entry point: it expands archives, detects metadata files,
indexes the remaining files by keccak256 and resolves every declared source.
"""
