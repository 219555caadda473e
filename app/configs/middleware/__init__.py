from configs.middleware.couchdb_config import CouchDBConfig


class MiddlewareConfig(CouchDBConfig):
    pass
