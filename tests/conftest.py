import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.database import enable_sqlite_foreign_keys, get_db
from app.main import app
from app.models.assessment_models import Base, DBCandidate, DBQuestion, DBTest

from factories import mcq_question


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_test(db):
    def _make(questions=None, title="Backend screening", requirements="Hiring a backend engineer"):
        db_test = DBTest(title=title, requirements=requirements, tags=["python"], duration_minutes=30)
        for order, question in enumerate(questions if questions is not None else [mcq_question()]):
            db_test.questions.append(DBQuestion(order=order, **question))
        db.add(db_test)
        db.commit()
        db.refresh(db_test)
        return db_test

    return _make


@pytest.fixture
def make_candidate(db):
    def _make(name="Ada Lovelace", email=None):
        candidate = DBCandidate(name=name, email=email or f"{name.split()[0].lower()}@example.com")
        db.add(candidate)
        db.commit()
        db.refresh(candidate)
        return candidate

    return _make
