"""Internal constants shared across the library."""

DEFAULT_SERVER = "http://127.0.0.1:5984"
DEFAULT_DATABASE = "data"
DEFAULT_DESIGN_DOCUMENT = "data"
DEFAULT_VIEW = "all_records"
DEFAULT_PRIMARY_KEY = "_id"
DEFAULT_LOCAL_TABLE = "field"

ACCEPT_HEADER = "application/json, */*"
USER_AGENT = "pycouchds"

#: Reserved CouchDB document fields.
ID_FIELD = "_id"
REV_FIELD = "_rev"
