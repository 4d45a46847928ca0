"""Command line entry point.

pagepilot state https://example.com           # print the indexed interactive elements
pagepilot state https://example.com --json    # JSON summary with tabs and scroll metrics
pagepilot actions                             # list the actions an agent can call
"""

import argparse
import asyncio
import json
import sys

from pagepilot.browser.profile import BrowserProfile
from pagepilot.browser.session import BrowserSession
from pagepilot.browser.views import BrowserError, BrowserState
from pagepilot.config import CONFIG
from pagepilot.dom.views import SnapshotDecodeError
from pagepilot.tools.service import Tools


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog='pagepilot',
		description='Inspect and drive a Chromium browser over the DevTools protocol',
	)
	subparsers = parser.add_subparsers(dest='command', help='Command to execute')

	p = subparsers.add_parser('state', help='Open a URL and print its interactive elements')
	p.add_argument('url', help='URL to open in the current tab')
	p.add_argument('--cdp-url', default=None, help=f'DevTools HTTP endpoint (default: {CONFIG.PAGEPILOT_CDP_URL})')
	p.add_argument('--wait', type=float, default=0, help='Seconds to wait after loading before taking the snapshot')
	p.add_argument('--json', action='store_true', help='Output as JSON')

	subparsers.add_parser('actions', help='List registered actions and their parameters')

	return parser


def state_to_dict(state: BrowserState) -> dict:
	return {
		'url': state.url,
		'title': state.title,
		'tabs': [tab.model_dump() for tab in state.tabs],
		'current_tab': state.current_tab.page_id,
		'pixels_above': state.pixels_above,
		'pixels_below': state.pixels_below,
		'elements': state.llm_representation(),
		'element_count': len(state.selector_map),
	}


async def run_state(args: argparse.Namespace) -> int:
	profile = BrowserProfile(cdp_url=args.cdp_url) if args.cdp_url else BrowserProfile()
	session = BrowserSession(browser_profile=profile)
	try:
		async with session:
			await session.navigate_to(args.url)
			if args.wait:
				await session.wait(args.wait)
			state = await session.refresh_state()
	except (BrowserError, SnapshotDecodeError) as e:
		print(f'Error: {e}', file=sys.stderr)
		return 1

	if args.json:
		print(json.dumps(state_to_dict(state), indent=2))
	else:
		print(f'{state.title} ({state.url})')
		print(f'... {state.pixels_above} pixels above, {state.pixels_below} pixels below ...')
		print(state.llm_representation())
	return 0


def main() -> int:
	"""Main entry point."""
	parser = build_parser()
	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		return 0

	if args.command == 'actions':
		print(Tools().get_prompt_description())
		return 0

	if args.command == 'state':
		return asyncio.run(run_state(args))

	parser.error(f'Unknown command: {args.command}')
	return 2


if __name__ == '__main__':
	sys.exit(main())
