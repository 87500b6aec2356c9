from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

AVAILABILITY_COLLECTION = "appointment_availability"

class Database:
    client: AsyncIOMotorClient = None
    db = None

db = Database()

async def connect_to_mongo():
    """Connect to MongoDB."""
    try:
        logger.info("Connecting to MongoDB...")
        db.client = AsyncIOMotorClient(settings.MONGO_URI)
        db.db = db.client[settings.DB_NAME]
        logger.info("Connected to MongoDB.")

        # Create indexes for collections
        await create_indexes()

    except Exception as e:
        logger.error(f"Could not connect to MongoDB: {e}")
        raise e

async def close_mongo_connection():
    """Close MongoDB connection."""
    if db.client:
        logger.info("Closing MongoDB connection...")
        db.client.close()
        db.client = None
        db.db = None
        logger.info("MongoDB connection closed.")

async def create_indexes():
    """Create indexes for collections."""
    try:
        # One configuration per (company, department) scope
        await db.db[AVAILABILITY_COLLECTION].create_index(
            [("companyId", ASCENDING), ("departmentId", ASCENDING)],
            unique=True
        )
        await db.db[AVAILABILITY_COLLECTION].create_index(
            [("companyId", ASCENDING), ("isActive", ASCENDING)]
        )

        logger.info("MongoDB indexes created successfully.")
    except Exception as e:
        logger.error(f"Failed to create MongoDB indexes: {e}")
