"""Core chain reconstruction for the Yinyang admin service.

Architecture Overview
---------------------
Leaf first:

1. **Record Store** (record_store.py):
   - ``RecordFetcher`` protocol the rest of the core depends on
   - SQLite implementation holding the record documents and the input-URL index

2. **Parent Resolver** (parent_resolver.py):
   - Reads a record's input URL and decides which request, if any, produced it

3. **Chain Assembler** (chain_assembler.py):
   - Walks every record to its root, with a cycle guard
   - ``raw`` and ``maximal`` output policies

4. **Reconstruction Pass** (reconstruction.py):
   - Concurrent fetch, then resolve, then assemble

5. **Chain Cache** (chain_cache.py):
   - Memoizes the last pass keyed by the distinct request count

Usage Example
-------------
    from yinyang.core import ChainCache, SQLiteRecordStore, config

    store = SQLiteRecordStore(config.database_path)
    cache = ChainCache(store, config)
    result = cache.get()
    for chain in result.chains:
        print(" -> ".join(link.request_id for link in chain))
"""

from yinyang.core.chain_assembler import AssemblyResult, assemble_chains
from yinyang.core.chain_cache import ChainCache, ChainsResult
from yinyang.core.config import YinyangConfig, config
from yinyang.core.errors import RecordParseError, RecordStoreUnavailable, YinyangError
from yinyang.core.parent_resolver import resolve_parent, resolve_parent_links
from yinyang.core.reconstruction import ReconstructionResult, reconstruct_chains
from yinyang.core.record_store import RecordFetcher, SQLiteRecordStore

__all__ = [
    "AssemblyResult",
    "ChainCache",
    "ChainsResult",
    "RecordFetcher",
    "RecordParseError",
    "RecordStoreUnavailable",
    "ReconstructionResult",
    "SQLiteRecordStore",
    "YinyangConfig",
    "YinyangError",
    "assemble_chains",
    "config",
    "reconstruct_chains",
    "resolve_parent",
    "resolve_parent_links",
]
