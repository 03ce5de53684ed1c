from fastapi import APIRouter, Depends, HTTPException, status
from db.database import get_db
from db.stores import AccountStore, DuplicateRecord
from models.account import AccountCreate

router = APIRouter()

@router.get("/")
async def list_accounts(conn = Depends(get_db)):
    """List all accounts."""
    return await AccountStore(conn).get_all()

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_account(account: AccountCreate, conn = Depends(get_db)):
    """Create a new account; its profile is created lazily on first use."""
    name = account.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    try:
        return await AccountStore(conn).create(name)
    except DuplicateRecord:
        raise HTTPException(status_code=400, detail="Account with this name already exists")
