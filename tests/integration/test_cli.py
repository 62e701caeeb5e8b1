"""
Integration tests for the Flask CLI commands.
"""

from insulcrm.models import ApplicationType, Product


class TestSeedCatalog:

    def test_seed_is_idempotent(self, app, session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=['seed-catalog'])
        assert first.exit_code == 0
        assert 'Seeded 5 application types and 7 products.' in first.output

        second = runner.invoke(args=['seed-catalog'])
        assert 'Seeded 0 application types and 0 products.' in second.output

        assert session.query(ApplicationType).count() == 5
        assert session.query(Product).count() == 7

    def test_init_db(self, app):
        result = app.test_cli_runner().invoke(args=['init-db'])

        assert result.exit_code == 0
        assert 'Database tables created.' in result.output
