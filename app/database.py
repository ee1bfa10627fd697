import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from app.config import settings
from app.repositories.base import BaseRepository
from app.repositories.requisition import RequisitionRepository
from app.repositories.inventory import InventoryRepository
from app.repositories.user import UserRepository
from app.repositories.audit import AuditRepository
from app.models.requisition import Requisition
from app.models.inventory import InventoryItem, InventoryCategory
from app.models.user import UserAccount
from app.models.audit import AuditEvent

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

    # Repositories
    requisitions: RequisitionRepository = None
    inventory: InventoryRepository = None
    categories: BaseRepository[InventoryCategory] = None
    users: UserRepository = None
    audit: AuditRepository = None

    def connect(self, client: AsyncIOMotorClient = None):
        """Initialize database connection and repositories."""
        self.client = client or AsyncIOMotorClient(settings.MONGODB_URL)
        self.bind(self.client[settings.DB_NAME])
        logger.info(f"Connected to MongoDB database {settings.DB_NAME}")

    def bind(self, database: AsyncIOMotorDatabase):
        """Attach repositories to their collections."""
        self.db = database
        self.requisitions = RequisitionRepository(database.stores_requests, Requisition)
        self.inventory = InventoryRepository(database.inventory, InventoryItem)
        self.categories = BaseRepository(database.inventory_categories, InventoryCategory)
        self.users = UserRepository(database.users, UserAccount)
        self.audit = AuditRepository(database.audit_log, AuditEvent)

    def close(self):
        """Close database connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

db = Database()

async def get_db() -> Database:
    """Dependency for FastAPI."""
    return db
