#!/usr/bin/env python3
"""
Shop Translator - Launcher
==========================
Start the API server (with in-process workers when START_WORKERS is set)
or a standalone queue worker.

Usage:
    python run.py            # API server
    python run.py worker     # queue worker only
"""
import os
import sys
from pathlib import Path

# Add package to path if running directly
package_dir = Path(__file__).parent
if str(package_dir) not in sys.path:
    sys.path.insert(0, str(package_dir))

os.environ.setdefault('SHOP_TRANSLATOR_APP_DIR', str(package_dir))
os.makedirs(os.path.join(os.environ['SHOP_TRANSLATOR_APP_DIR'], 'logs'), exist_ok=True)


# Colors for terminal output
class Colors:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    CYAN = '\033[96m'


def check_translation_api() -> bool:
    """Check if the configured chat-completion endpoint answers."""
    from shop_translator.services.api_client import get_api_client
    return get_api_client().is_healthy()


def print_banner(mode: str):
    """Display startup banner"""
    from shop_translator.config import config

    print(f"\n{Colors.CYAN}{'='*60}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.GREEN}  SHOP TRANSLATOR - {mode}{Colors.RESET}")
    print(f"{Colors.CYAN}{'='*60}{Colors.RESET}")
    print(f"  API:   {config.api.base_url} ({config.api.model})")
    print(f"  Redis: {'enabled' if config.redis.enabled else 'disabled'}")
    print(f"{Colors.CYAN}{'='*60}{Colors.RESET}\n")


def main():
    mode = sys.argv[1] if len(sys.argv) > 1 else 'server'
    if mode not in ('server', 'worker'):
        print(f"{Colors.RED}Unknown mode '{mode}', expected 'server' or 'worker'{Colors.RESET}")
        sys.exit(2)

    print_banner('Worker' if mode == 'worker' else 'API Server')
    if not check_translation_api():
        print(f"{Colors.YELLOW}Warning: translation API is not reachable; jobs will fail until it is{Colors.RESET}\n")

    if mode == 'worker':
        from shop_translator.worker import run_worker
        run_worker()
    else:
        from shop_translator.app import run_server
        run_server()


if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Shutting down Shop Translator...{Colors.RESET}")
