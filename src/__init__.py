"""VecRec: real-time recommendations from implicit-feedback item vectors.

This package serves recommendations from item factor vectors produced by an
offline matrix factorization trainer. User vectors are solved on every
request from the items the user has consumed.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: vector model, item vector loading and errors
    config: environment driven settings
"""

__version__ = "0.1.0"
