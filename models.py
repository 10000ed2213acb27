from sqlalchemy import JSON, Column, String

from database import Base


class Item(Base):
    """One row of the single-table store.

    ``pk``/``sk`` form the composite key; ``data`` holds the full flat item,
    key fields included, so a row can be returned exactly as it was put.
    """

    __tablename__ = "items"
    pk = Column(String(255), primary_key=True)
    sk = Column(String(255), primary_key=True)
    entity_type = Column(String(32), index=True)
    data = Column(JSON, nullable=False)
