from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from social_signals.db.models import Base

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


def _config(db_path) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    cfg.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{db_path}")
    return cfg


def test_upgrade_head_matches_models(tmp_path):
    db_path = tmp_path / "migrated.db"
    command.upgrade(_config(db_path), "head")

    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        inspector = sa.inspect(engine)
        assert set(inspector.get_table_names()) == set(Base.metadata.tables) | {"alembic_version"}

        for name, table in Base.metadata.tables.items():
            columns = {c["name"] for c in inspector.get_columns(name)}
            assert columns == {c.name for c in table.columns}, name

            indexes = {i["name"] for i in inspector.get_indexes(name)}
            assert indexes == {i.name for i in table.indexes}, name

            uniques = {u["name"] for u in inspector.get_unique_constraints(name)}
            expected = {c.name for c in table.constraints if isinstance(c, sa.UniqueConstraint)}
            assert uniques == expected, name

            fks = {(fk["referred_table"], tuple(fk["constrained_columns"])) for fk in inspector.get_foreign_keys(name)}
            assert fks == {(fk.column.table.name, (fk.parent.name,)) for fk in table.foreign_keys}, name
    finally:
        engine.dispose()


def test_upgrade_is_idempotent_and_downgrade_drops_everything(tmp_path):
    db_path = tmp_path / "migrated.db"
    cfg = _config(db_path)

    # tables that already exist are skipped
    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        Base.metadata.tables["posts"].create(engine)
        command.upgrade(cfg, "head")
        command.downgrade(cfg, "base")

        assert sa.inspect(engine).get_table_names() == ["alembic_version"]
    finally:
        engine.dispose()
