"""Domain layer: the canonical Lightning model shared by every backend adapter.

Contains value objects, enums, the error-code result mapping and the client
protocols that callers program against.
"""
