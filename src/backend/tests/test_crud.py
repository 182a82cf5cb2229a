# tests/test_crud.py
# crud関数が組み立てるSQLとコミットの回数を，DBに接続せずに確認する．
from types import SimpleNamespace
import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from app.crud import rating as crud_rating
from app.crud import spot as crud_spot

class RecordingQuery:
    def __init__(self):
        self.criteria = []
        self.limit_value = None

    def filter(self, *criteria):
        self.criteria.extend(criteria)
        return self

    def order_by(self, *clauses):
        return self

    def limit(self, value):
        self.limit_value = value
        return self

    def all(self):
        return []

    def sql(self) -> str:
        return ' AND '.join(str(c.compile(dialect=postgresql.dialect())) for c in self.criteria)

class RecordingSession:
    def __init__(self, fail_on: int | None = None):
        self.fail_on = fail_on
        self.executed = []
        self.commits = 0
        self.queries = []

    def query(self, *entities):
        query = RecordingQuery()
        self.queries.append(query)
        return query

    def execute(self, statement):
        if self.fail_on is not None and len(self.executed) == self.fail_on:
            raise OperationalError(str(statement), {}, Exception("connection lost"))
        self.executed.append(statement)
        return SimpleNamespace(rowcount=1)

    def commit(self):
        self.commits += 1

class TestSearchSpots:
    def test_bounds_are_filtered_in_sql(self):
        db = RecordingSession()
        crud_spot.search_spots(db, bounds=(48.0, 2.0, 49.0, 3.0), limit=500)

        [query] = db.queries
        assert 'spots.latitude BETWEEN' in query.sql()
        assert 'spots.longitude BETWEEN' in query.sql()
        assert query.limit_value == 500

    def test_without_bounds(self):
        db = RecordingSession()
        crud_spot.search_spots(db, q='wall')

        [query] = db.queries
        assert 'BETWEEN' not in query.sql()
        assert 'spots.name ILIKE' in query.sql()

class TestRatingWrites:
    def test_rating_and_aggregate_commit_together(self):
        db = RecordingSession()
        crud_rating.upsert_rating(db, 'spot-1', 'user-1', 4.0)
        assert len(db.executed) == 2
        assert db.commits == 1

    def test_failed_aggregate_commits_nothing(self):
        db = RecordingSession(fail_on=1)
        with pytest.raises(OperationalError):
            crud_rating.upsert_rating(db, 'spot-1', 'user-1', 4.0)
        assert len(db.executed) == 1
        assert db.commits == 0

    def test_recompute_commits_once(self):
        db = RecordingSession()
        assert crud_rating.recompute_spot_aggregate(db) == 1
        assert db.commits == 1

def test_duplicate_candidates_are_native_originals():
    db = RecordingSession()
    crud_spot.search_duplicate_candidates(db, exclude_spot_id='wall', q='harbour')

    sql = db.queries[0].sql()
    assert 'spots.duplicate_of IS NULL' in sql
    assert 'spots.spot_source IS NULL' in sql
    assert 'spots.id != ' in sql
