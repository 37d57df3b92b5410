"""Column types shared by all entities."""

from sqlalchemy import BigInteger, Integer

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
RecordId = BigInteger().with_variant(Integer(), "sqlite")

# Unix seconds; 0 means "not yet updated" / "not deleted".
UnixTimestamp = BigInteger
