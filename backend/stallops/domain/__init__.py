"""
Pure business rules for stall-chain operations.

Every module here works on immutable records: a transition takes the current
record plus a validated payload and returns a new record, or raises a
DomainError without touching its input. Nothing in this package talks to the
database, the network or the clock; time is always passed in.
"""
