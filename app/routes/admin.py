import logging
from fastapi import APIRouter, Depends
from app.models.admin import AdminResponse, AdminLogin, AdminLoginResponse
from app.utils.auth import verify_password, create_access_token, require_admin
from app.database.db_operations import db_ops
from app.config.database import Collections
from app.utils.errors import AuthenticationError, NotFoundError, PermissionDeniedError
from app.utils.helpers import serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/login", response_model=AdminLoginResponse)
async def admin_login(credentials: AdminLogin):
    """
    Authenticate an administrator and return a JWT token
    """
    admin = await db_ops.get_one(Collections.ADMINS, {
        "$or": [
            {"username": credentials.username},
            {"email": credentials.username.lower()}
        ]
    })

    if not admin or not verify_password(credentials.password, admin.get("password", "")):
        logger.warning("Failed admin login for %s", credentials.username)
        raise AuthenticationError("Invalid username or password")

    if not admin.get("isActive", True):
        raise PermissionDeniedError("Account is deactivated")

    token_data = {
        "sub": str(admin["_id"]),
        "username": admin["username"],
        "role": admin.get("role", "admin"),
    }
    access_token = create_access_token(data=token_data)
    logger.info("Admin %s logged in", admin["username"])

    return AdminLoginResponse(
        access_token=access_token,
        admin=AdminResponse(**serialize_doc(admin))
    )


@router.get("/me", response_model=AdminResponse)
async def get_current_admin(current_user: dict = Depends(require_admin)):
    """
    Get current authenticated admin information
    """
    admin = await db_ops.get_by_id(Collections.ADMINS, current_user["sub"])
    if not admin:
        raise NotFoundError("Admin not found")
    return AdminResponse(**serialize_doc(admin))
