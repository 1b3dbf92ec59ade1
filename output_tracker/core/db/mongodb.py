import logging

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from output_tracker.core.setting import config
from output_tracker.core.models.production import ProductionSummary
from output_tracker.core.models.target import WorkcenterTarget, WorkcenterTimeSlotTarget

logger = logging.getLogger(__name__)


motor_client = None

async def connect_to_mongo() -> AsyncIOMotorClient:
    global motor_client

    motor_client = AsyncIOMotorClient(str(config.MONGODB_URL), tz_aware=True)

    # Initialize Beanie with the database and the list of document models
    await init_beanie(
        database=motor_client[config.DATABASE_NAME],
        document_models=[
            ProductionSummary,
            WorkcenterTarget,
            WorkcenterTimeSlotTarget,
        ]
    )
    logger.info(f"Successfully connected to MongoDB at {config.DATABASE_NAME}")
    return motor_client

async def close_mongo_connection():
    global motor_client
    if motor_client:
        motor_client.close()
        motor_client = None
    logger.info("Closed MongoDB connection")
