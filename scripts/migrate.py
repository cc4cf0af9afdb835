"""Upgrade the cloudiam schema and optionally seed the predefined roles."""

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent

# Add project root to path
sys.path.insert(0, str(ROOT))

from alembic import command
from alembic.config import Config

from cloudiam.utils.logger import configure_logging, get_logger
from scripts.seed import main as seed

logger = get_logger(__name__)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Manage cloudiam schema migrations")
    parser.add_argument("--revision", type=str, help="Autogenerate a revision with this message")
    parser.add_argument("--downgrade", type=str, help="Downgrade to this revision, e.g. -1 or base")
    parser.add_argument("--seed", action="store_true", help="Seed predefined roles after upgrading")
    args = parser.parse_args(argv)

    configure_logging()
    alembic_cfg = Config(str(ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT / "alembic"))

    if args.revision:
        command.revision(alembic_cfg, autogenerate=True, message=args.revision)
        return
    if args.downgrade:
        command.downgrade(alembic_cfg, args.downgrade)
        logger.info("Downgraded schema", target=args.downgrade)
        return

    command.upgrade(alembic_cfg, "head")
    logger.info("Upgraded schema", target="head")
    if args.seed:
        asyncio.run(seed())


if __name__ == "__main__":
    main()
