"""SQLite — init + session + CRUD helpers (block posts, users)"""
from pathlib import Path
from typing import List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base, BlockPostDB, PostStatus, UserDB, POST_TYPE

ENGINE       = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def _make_engine(db_url: str):
    return create_engine(db_url, connect_args={"check_same_thread": False})


def init_db(db_url: Optional[str] = None):
    """Crée les tables. Un db_url explicite re-pointe l'engine (tests, multi-sites)."""
    global ENGINE
    if db_url is None and ENGINE is None:
        from .config import load_settings
        return init_db_from_settings(load_settings())
    if db_url is not None:
        if ENGINE is not None:
            ENGINE.dispose()
        ENGINE = _make_engine(db_url)
        SessionLocal.configure(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)


def init_db_from_settings(settings):
    """Crée le dossier du fichier SQLite puis init_db(settings.db_url)."""
    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)
    init_db(settings.db_url)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── Block posts ──
def db_list_published_block_posts(db: Session) -> List[BlockPostDB]:
    return (db.query(BlockPostDB)
              .filter_by(post_type=POST_TYPE, post_status=PostStatus.PUBLISH.value)
              .order_by(BlockPostDB.post_id)
              .all())

def db_get_block_post(db: Session, slug: str) -> Optional[BlockPostDB]:
    return db.query(BlockPostDB).filter_by(post_type=POST_TYPE, slug=slug).first()

def db_upsert_block_post(db: Session, slug: str, content: str,
                         status: str = PostStatus.PUBLISH.value) -> BlockPostDB:
    post = db_get_block_post(db, slug)
    if post:
        post.post_content = content
        post.post_status  = status
    else:
        post = BlockPostDB(slug=slug, post_content=content, post_status=status)
        db.add(post)
    db.commit(); db.refresh(post); return post


# ── Users ──
def db_create_user(db: Session, obj: UserDB) -> UserDB:
    db.add(obj); db.commit(); db.refresh(obj); return obj

def db_get_user_by_login(db: Session, login: str) -> Optional[UserDB]:
    return db.query(UserDB).filter_by(login=login).first()
