"""Business logic services used by handlers.

Handlers build each service lazily and keep it for the life of the
container, so the workflow HTTP session, the SQLAlchemy engine and the boto3
table resources are created once and reused across warm invocations.
"""
