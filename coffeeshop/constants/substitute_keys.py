# DB attribute renames applied before a record is returned to the UI;
# an empty value drops the attribute
from_db = {
    'id_': 'id',
    'name_': 'name',
    'partkey': None,
    'sortkey': None,
    'record_type': None,
    'ttl_': None,
}
