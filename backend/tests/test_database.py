import pytest

from everjourney.db.database import session_scope
from everjourney.db.models import Country


def test_session_scope_commits(db):
    with session_scope() as session:
        session.add(Country(name="Nepal", code="NP"))
    assert db.query(Country).filter_by(code="NP").count() == 1


def test_session_scope_rolls_back_on_error(db):
    with pytest.raises(RuntimeError):
        with session_scope() as session:
            session.add(Country(name="Bhutan", code="BT"))
            session.flush()
            raise RuntimeError("boom")
    assert db.query(Country).count() == 0
