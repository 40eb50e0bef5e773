"""
Integration tests for Flask CLI commands.
"""

from restopos.services.stock_ledger import StockLedger


def test_init_db(app, session):
    result = app.test_cli_runner().invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Database tables created.' in result.output


def test_low_stock(app, session, product, product2):
    stock_id = product2.stock.id
    runner = app.test_cli_runner()
    assert 'No low-stock products.' in runner.invoke(args=['low-stock']).output

    StockLedger(session).set_absolute(stock_id, 1)
    session.commit()

    result = runner.invoke(args=['low-stock'])
    assert result.exit_code == 0
    assert 'Iced Coffee: 1 (min 2)' in result.output
