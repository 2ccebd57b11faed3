from models.base_model import Base, BaseModel, utc_now
from models.db_storage import DBStorage

__all__ = ["Base", "BaseModel", "DBStorage", "utc_now"]
