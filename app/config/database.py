"""
Database configuration and connection management for MongoDB
"""
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from typing import Optional
import os
from dotenv import load_dotenv

load_dotenv()

class DatabaseConfig:
    """MongoDB database configuration"""

    def __init__(self):
        self.MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.DATABASE_NAME = os.getenv("DATABASE_NAME", "beam_affiliate")
        self.client: Optional[AsyncIOMotorClient] = None
        self.database = None

    async def connect_db(self):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(self.MONGO_URI)
            self.database = self.client[self.DATABASE_NAME]
            # Test connection
            await self.client.admin.command('ping')
            print(f"✅ Connected to MongoDB: {self.DATABASE_NAME}")
        except Exception as e:
            print(f"❌ Error connecting to MongoDB: {e}")
            raise

    async def close_db(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            print("✅ MongoDB connection closed")

    def get_collection(self, collection_name: str):
        """Get a specific collection"""
        if self.database is None:
            raise Exception("Database not connected")
        return self.database[collection_name]

# Global database instance
db_config = DatabaseConfig()

# Collection names
class Collections:
    USERS = "users"
    ADMINS = "admins"
    PRODUCTS = "products"

    # Sales pipeline
    TRANSACTIONS = "transactions"
    COMMISSIONS = "commissions"
    PAYMENTS = "payments"

    # Review and audit
    FRAUD_ALERTS = "fraud_alerts"
    RECONCILIATION_RUNS = "reconciliation_runs"


async def ensure_indexes():
    """Create the indexes the sales pipeline relies on for identity guarantees."""
    users = db_config.get_collection(Collections.USERS)
    await users.create_index("resellerId", unique=True)

    transactions = db_config.get_collection(Collections.TRANSACTIONS)
    # One transaction per store order; manual entries carry no orderId
    await transactions.create_index("orderId", unique=True, sparse=True)
    await transactions.create_index([("resellerId", ASCENDING), ("createdAt", DESCENDING)])

    commissions = db_config.get_collection(Collections.COMMISSIONS)
    await commissions.create_index("transactionId", unique=True, sparse=True)
    await commissions.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])

    payments = db_config.get_collection(Collections.PAYMENTS)
    await payments.create_index("paymentId", unique=True)
    # Legacy payments predate the transaction reference, hence sparse
    await payments.create_index("transactionId", unique=True, sparse=True)
    await payments.create_index([("adminApproval", ASCENDING), ("createdAt", DESCENDING)])

    fraud_alerts = db_config.get_collection(Collections.FRAUD_ALERTS)
    await fraud_alerts.create_index([("transactionId", ASCENDING), ("status", ASCENDING)])
