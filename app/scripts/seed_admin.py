"""
Seed script: first admin, a demo reseller and a catalog product.
Prints a reseller token for trying the reseller API locally.
"""
import asyncio
from datetime import datetime

from app.config.database import db_config, Collections, ensure_indexes
from app.utils.auth import hash_password, create_access_token

DEMO_RESELLER_ID = "F2FA9D"


async def seed():
    await db_config.connect_db()
    await ensure_indexes()

    admins = db_config.get_collection(Collections.ADMINS)
    users = db_config.get_collection(Collections.USERS)
    products = db_config.get_collection(Collections.PRODUCTS)
    now = datetime.utcnow()

    print("🌱 Seeding admin user...")
    if await admins.find_one({"username": "admin"}):
        print("⚠️  Admin user already exists. Skipping...")
    else:
        await admins.insert_one({
            "username": "admin",
            "email": "admin@example.com",
            "fullName": "System Administrator",
            "role": "super_admin",
            "isActive": True,
            "password": hash_password("admin123"),  # Default password
            "createdAt": now,
            "updatedAt": now,
        })
        print("✅ Created admin user: admin / admin123")
        print("⚠️  IMPORTANT: Change the default password after first login!")

    print("🌱 Seeding demo reseller...")
    if await users.find_one({"resellerId": DEMO_RESELLER_ID}):
        print(f"⚠️  Reseller {DEMO_RESELLER_ID} already exists. Skipping...")
    else:
        await users.insert_one({
            "resellerId": DEMO_RESELLER_ID,
            "email": "reseller@example.com",
            "firstName": "Demo",
            "lastName": "Reseller",
            "level": "Beginner",
            "balance": 0.0,
            "totalEarnings": 0.0,
            "totalSales": 0,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        })
        print(f"✅ Created reseller {DEMO_RESELLER_ID}")

    print("🌱 Seeding catalog product...")
    product = await products.find_one({"name": "Beam Wallet Installation"})
    if not product:
        result = await products.insert_one({
            "name": "Beam Wallet Installation",
            "description": "On-site installation of the Beam Wallet point of sale",
            "price": 249.00,
            "commission": 50,
            "category": "Installation",
            "isActive": True,
            "features": [],
            "createdAt": now,
            "updatedAt": now,
        })
        product = await products.find_one({"_id": result.inserted_id})
        print(f"✅ Created product {product['_id']}")
    else:
        print(f"⚠️  Product already exists: {product['_id']}")

    token = create_access_token({"resellerId": DEMO_RESELLER_ID, "role": "reseller"})
    print(f"\n🔑 Reseller token for {DEMO_RESELLER_ID}:\n{token}")

    await db_config.close_db()


if __name__ == "__main__":
    asyncio.run(seed())
