"""
Integration tests for the mapper against a real PostgreSQL instance.

These tests verify that:
1. Save scans the server-assigned id and timestamps back into the record
2. Update refreshes updated_at and never touches created_at
3. Find / All / Destroy round-trip through the articles table
4. The %s placeholder style runs on a pool opened for it

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import pytest

from rowmapper.domain.models import Article
from rowmapper.orm.errors import ExecutionError, ExecutionKind, NotFoundError
from rowmapper.orm.mapper import Mapper
from rowmapper.orm.statements import PlaceholderStyle, StatementBuilder

# Test expectation constants
EXPECTED_ARTICLE_COUNT = 2
FIND_REPEAT = 10

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture
def db(test_settings, test_dsn, clean_articles_table):
    mapper = Mapper.connect(test_settings, dsn_override=test_dsn)
    try:
        yield mapper
    finally:
        mapper.close()


class TestSave:
    def test_save_populates_generated_fields(self, db: Mapper):
        article = Article(title="Hey!!", text="A test.")

        db.save(article)

        assert article.id is not None and article.id > 0
        assert article.created_at is not None
        assert article.updated_at is not None
        assert (article.title, article.text) == ("Hey!!", "A test.")

    def test_save_with_duplicate_id_is_a_constraint_error(self, db: Mapper):
        first = Article(title="first")
        db.save(first)

        with pytest.raises(ExecutionError) as excinfo:
            db.save(Article(id=first.id, title="second"))
        assert excinfo.value.kind is ExecutionKind.CONSTRAINT


class TestUpdate:
    def test_update_keeps_created_at_and_advances_updated_at(self, db: Mapper):
        article = Article(title="Old", text="body")
        db.save(article)
        created_at = article.created_at
        previous_updated_at = article.updated_at

        article.title = "New"
        article.updated_at = datetime(2000, 1, 1, tzinfo=timezone.utc)
        db.update(article)

        assert article.title == "New"
        assert article.text == "body"
        assert article.created_at == created_at
        assert article.updated_at >= previous_updated_at - timedelta(seconds=1)


class TestReadAndDelete:
    def test_find_repeatedly_uses_the_same_statement(self, db: Mapper):
        saved = Article(title="cached")
        db.save(saved)

        for _ in range(FIND_REPEAT):
            found = Article()
            db.find(found, saved.id)
            assert found == saved

    def test_find_missing_raises_not_found(self, db: Mapper):
        article = Article(title="untouched")
        with pytest.raises(NotFoundError):
            db.find(article, 999_999)
        assert article == Article(title="untouched")

    def test_all_and_destroy(self, db: Mapper):
        first = db.save(Article(title="a"))
        db.save(Article(title="b"))

        assert len(db.all(Article)) == EXPECTED_ARTICLE_COUNT
        assert db.destroy(first) == 1
        assert [a.title for a in db.all(Article)] == ["b"]


class TestPyformatStyle:
    def test_save_and_find_with_pyformat_placeholders(
        self, test_settings, test_dsn, clean_articles_table
    ):
        builder = StatementBuilder(PlaceholderStyle.PYFORMAT)
        with Mapper.connect(test_settings, dsn_override=test_dsn, builder=builder) as db:
            saved = db.save(Article(title="percent"))
            found = db.find(Article(), saved.id)

        assert found.title == "percent"
