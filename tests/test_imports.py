"""
Smoke tests to verify all modules can be imported.
"""

def test_import_vote_core():
    import vote_core
    assert hasattr(vote_core, '__version__')


def test_import_store():
    import store
    assert hasattr(store, '__version__')


def test_import_console():
    import console
    assert hasattr(console, '__version__')
