import allure
from click.testing import CliRunner

from lytspot_outbox import __version__
from lytspot_outbox.main import lytspot_outbox

pytestmark = [
    allure.epic("Submission Outbox"),
    allure.feature("CLI Ops"),
]


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(lytspot_outbox, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
