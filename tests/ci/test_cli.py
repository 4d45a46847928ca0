import json
import sys

import pytest

from pagepilot import cli
from pagepilot.browser.session import BrowserSession
from tests.ci.conftest import FakeDriver


@pytest.fixture
def fake_browser(monkeypatch):
	"""Route the CLI's session onto an in-memory driver."""
	driver = FakeDriver()
	sessions: list[BrowserSession] = []

	def make_session(**kwargs):
		session = BrowserSession(driver=driver, **kwargs)
		sessions.append(session)
		return session

	monkeypatch.setattr(cli, 'BrowserSession', make_session)
	return driver, sessions


def run_cli(monkeypatch, *args: str) -> int:
	monkeypatch.setattr(sys, 'argv', ['pagepilot', *args])
	return cli.main()


def test_no_command_prints_help(monkeypatch, capsys):
	assert run_cli(monkeypatch) == 0
	assert 'usage: pagepilot' in capsys.readouterr().out


def test_actions_lists_registered_actions(monkeypatch, capsys):
	assert run_cli(monkeypatch, 'actions') == 0

	out = capsys.readouterr().out
	assert out.startswith('wait: Wait for x seconds default 3')
	assert 'input_text: Input text into an input interactive element' in out


def test_state_prints_elements(monkeypatch, capsys, fake_browser):
	driver, _ = fake_browser

	assert run_cli(monkeypatch, 'state', 'https://example.com/login') == 0

	out = capsys.readouterr().out
	assert out.splitlines()[0] == 'Title of https://example.com/login (https://example.com/login)'
	assert '[0]<input email;email;you@example.com>/>' in out
	assert not driver.connected


def test_state_json(monkeypatch, capsys, fake_browser):
	driver, sessions = fake_browser
	driver.evaluate_results['document.documentElement.scrollHeight'] = '1800'

	assert run_cli(monkeypatch, 'state', 'https://example.com/login', '--json', '--cdp-url', 'http://browser:9333') == 0

	summary = json.loads(capsys.readouterr().out)
	assert summary['url'] == 'https://example.com/login'
	assert summary['element_count'] == 3
	assert summary['pixels_below'] == 1000
	assert summary['tabs'][0]['page_id'] == 0
	assert sessions[0].browser_profile.cdp_url == 'http://browser:9333'


def test_state_reports_browser_errors(monkeypatch, capsys, fake_browser):
	driver, _ = fake_browser
	driver.evaluate_results['1+1'] = 'null'

	assert run_cli(monkeypatch, 'state', 'https://example.com/') == 1
	assert 'JavaScript execution is not working' in capsys.readouterr().err
