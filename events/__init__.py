"""events/ -- Calendar domain: event records, their store, and the scheduling rules.

Layer rule: events/ imports stdlib, third-party libraries, core/, and
auth/models. It does NOT import from api/.
"""
