from woc.db.database import async_session_maker, get_db, init_db

__all__ = ["async_session_maker", "get_db", "init_db"]
