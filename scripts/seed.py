"""Script to seed database with the predefined role hierarchy."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from cloudiam.config.database import AsyncSessionLocal, close_db, init_db
from cloudiam.schemas.role import RoleCreate
from cloudiam.services.role_mapping_service import RoleMappingService
from cloudiam.utils.constants import RoleType
from cloudiam.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)

# (name, parent name, role types)
PREDEFINED_ROLES = [
    ("platform-admin", None, [RoleType.PLATFORM, RoleType.CSP]),
    ("operator", "platform-admin", [RoleType.PLATFORM, RoleType.WORKSPACE, RoleType.CSP]),
    ("viewer", "operator", [RoleType.PLATFORM, RoleType.WORKSPACE]),
    ("billing-viewer", "viewer", [RoleType.PLATFORM, RoleType.CSP]),
]


async def seed_roles():
    """Create predefined roles that do not exist yet."""
    async with AsyncSessionLocal() as session:
        service = RoleMappingService(session)
        for name, parent_name, role_types in PREDEFINED_ROLES:
            if await service.role_repo.get_by_name(name):
                logger.info("Role already present", name=name)
                continue
            parent_id = None
            if parent_name:
                parent_id = (await service.get_role_by_name(parent_name)).id
            await service.create_role(
                RoleCreate(name=name, parent_id=parent_id, predefined=True, role_types=role_types)
            )


async def main():
    """Main seeding function."""
    configure_logging()
    logger.info("Starting database seeding")
    await init_db()
    await seed_roles()
    await close_db()
    logger.info("Database seeding completed")


if __name__ == "__main__":
    asyncio.run(main())
