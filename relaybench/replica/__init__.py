"""CRDT engine protocol, the pycrdt adapter and the replica driver."""

from relaybench.replica.driver import ReplicaDriver
from relaybench.replica.engine import CrdtEngine, CrdtFactory, OnUpdate
from relaybench.replica.pycrdt_engine import PycrdtEngine, PycrdtFactory

__all__ = [
    "CrdtEngine",
    "CrdtFactory",
    "OnUpdate",
    "PycrdtEngine",
    "PycrdtFactory",
    "ReplicaDriver",
]
