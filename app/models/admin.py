from pydantic import BaseModel, Field, EmailStr
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from bson import ObjectId

class AdminResponse(BaseModel):
    id: str = Field(alias="_id")
    username: str
    email: EmailStr
    full_name: str = ""
    role: str = "admin"
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        alias_generator = to_camel
        json_encoders = {ObjectId: str}

class AdminLogin(BaseModel):
    username: str
    password: str

class AdminLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminResponse
