from .harness import GDBDebugger as GDBDebugger
