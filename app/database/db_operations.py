"""
Database operations - Generic CRUD functions for all collections
"""
from typing import List, Dict, Optional, Any
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument, DESCENDING
from app.config.database import db_config
from datetime import datetime

class DBOperations:
    """Generic database operations for MongoDB collections"""

    @staticmethod
    async def get_all(collection_name: str, filter_query: Dict = None, skip: int = 0, limit: int = 100,
                      sort_field: str = "createdAt") -> List[Dict]:
        """Get documents from a collection, newest first, with optional filtering"""
        collection = db_config.get_collection(collection_name)
        filter_query = filter_query or {}
        cursor = collection.find(filter_query).sort(sort_field, DESCENDING).skip(skip).limit(limit)
        documents = await cursor.to_list(length=limit)
        return documents

    @staticmethod
    async def get_by_id(collection_name: str, doc_id: Any) -> Optional[Dict]:
        """Get a single document by ID"""
        collection = db_config.get_collection(collection_name)
        try:
            oid = doc_id if isinstance(doc_id, ObjectId) else ObjectId(doc_id)
        except (InvalidId, TypeError):
            return None
        return await collection.find_one({"_id": oid})

    @staticmethod
    async def get_one(collection_name: str, filter_query: Dict) -> Optional[Dict]:
        """Get a single document by filter query"""
        collection = db_config.get_collection(collection_name)
        document = await collection.find_one(filter_query)
        return document

    @staticmethod
    async def create(collection_name: str, document: Dict) -> Dict:
        """Create a new document"""
        collection = db_config.get_collection(collection_name)
        now = datetime.utcnow()
        document.setdefault("createdAt", now)
        document["updatedAt"] = now
        result = await collection.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    @staticmethod
    async def update(collection_name: str, doc_id: Any, update_data: Dict) -> Optional[Dict]:
        """Update a document by ID"""
        try:
            oid = doc_id if isinstance(doc_id, ObjectId) else ObjectId(doc_id)
        except (InvalidId, TypeError):
            return None
        return await DBOperations.update_one_where(collection_name, {"_id": oid}, {"$set": update_data})

    @staticmethod
    async def update_one_where(collection_name: str, filter_query: Dict, update: Dict,
                               sort: Optional[List] = None) -> Optional[Dict]:
        """
        Atomically apply an update operator document to the first match.
        Returns the updated document, or None when nothing matched the filter,
        which callers use as a compare-and-set.
        """
        collection = db_config.get_collection(collection_name)
        update = dict(update)
        update["$set"] = {**update.get("$set", {}), "updatedAt": datetime.utcnow()}
        return await collection.find_one_and_update(
            filter_query,
            update,
            sort=sort,
            return_document=ReturnDocument.AFTER,
        )

    @staticmethod
    async def count(collection_name: str, filter_query: Dict = None) -> int:
        """Count documents in a collection"""
        collection = db_config.get_collection(collection_name)
        filter_query = filter_query or {}
        count = await collection.count_documents(filter_query)
        return count

    @staticmethod
    async def aggregate(collection_name: str, pipeline: List[Dict]) -> List[Dict]:
        """Execute aggregation pipeline"""
        collection = db_config.get_collection(collection_name)
        cursor = collection.aggregate(pipeline)
        results = await cursor.to_list(length=None)
        return results

db_ops = DBOperations()
