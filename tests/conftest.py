import os

import pytest

from asmcore.mnemonics import mnemonic_table_manager

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _reset_mnemonic_table():
    mnemonic_table_manager.load_default()
    yield
    mnemonic_table_manager.load_default()


@pytest.fixture
def table():
    return mnemonic_table_manager.current()


@pytest.fixture(scope="session")
def qapp():
    QtWidgets = pytest.importorskip("PyQt6.QtWidgets")
    yield QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
