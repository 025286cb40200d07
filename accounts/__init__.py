"""
accounts/ -- Example user backend for the AuthLane demo application.

AuthLane itself knows nothing about user storage. This package is the
collaborator its strategies call into: an Account dataclass, a SQLAlchemy
Core repository, bcrypt password checks, remember-me tokens, and the
strategy functions that tie them to the engine.

Layer rule: accounts/ may import from authlane/ and core/.
It does NOT import from api/ or web/.
"""
