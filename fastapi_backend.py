import logging
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import API_HOST, API_PORT, configure_logging
from database.database import get_db, init_db
from database.repository import ExpenseStore
from expense_types.types import (
    CreateExpenseRequest,
    Dashboard,
    Expense,
    FriendBalance,
    GroupBalance,
    SettleExpenseRequest,
)
from ledger.errors import LedgerError
from ledger.service import ExpenseService

logger = logging.getLogger(__name__)

app = FastAPI(title="Shared Expense Ledger API", version="1.0.0")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Turn engine errors into JSON responses with their status code"""
    logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "message": exc.message, "status": exc.status_code},
    )


def get_service(db: Session = Depends(get_db)) -> ExpenseService:
    """Dependency wiring the service to a request-scoped session"""
    return ExpenseService(ExpenseStore(db))


# API Endpoints

@app.get("/")
async def root():
    return {"message": "Shared Expense Ledger API", "version": "1.0.0"}


@app.post("/expenses", response_model=Expense, status_code=201)
def create_expense(request: CreateExpenseRequest, service: ExpenseService = Depends(get_service)):
    """Create a new expense"""
    return service.create_expense(request)


@app.get("/expenses/{expense_id}", response_model=Expense)
def get_expense(expense_id: int, service: ExpenseService = Depends(get_service)):
    """Get expense by ID"""
    return service.get_expense(expense_id)


@app.delete("/expenses/{expense_id}")
def delete_expense(expense_id: int, service: ExpenseService = Depends(get_service)):
    """Delete an expense"""
    service.delete_expense(expense_id)
    return {"message": "Expense deleted successfully"}


@app.post("/expenses/{expense_id}/settle", response_model=Expense)
def settle_expense(expense_id: int, request: SettleExpenseRequest, service: ExpenseService = Depends(get_service)):
    """Settle part or all of one participant's share"""
    return service.settle(expense_id, request)


@app.post("/expenses/{expense_id}/settle-all", response_model=Expense)
def settle_all(expense_id: int, service: ExpenseService = Depends(get_service)):
    """Mark every participant of an expense as settled"""
    return service.settle_all(expense_id)


@app.get("/users/{user_id}/expenses", response_model=List[Expense])
def get_user_expenses(
    user_id: str,
    involvement: str = Query("ALL", alias="filter", description="ALL, CREATOR, PAYER or PARTICIPANT"),
    start: Optional[date] = None,
    end: Optional[date] = None,
    friend_id: Optional[str] = None,
    group_id: Optional[str] = None,
    service: ExpenseService = Depends(get_service),
):
    """Get expenses a user is involved in"""
    return service.list_expenses(user_id, involvement, start, end, friend_id, group_id)


@app.get("/groups/{group_id}/expenses", response_model=List[Expense])
def get_group_expenses(group_id: str, service: ExpenseService = Depends(get_service)):
    """Get all expenses recorded in a group"""
    return service.group_expenses(group_id)


@app.get("/users/{user_id}/balances", response_model=List[FriendBalance])
def get_user_balances(
    user_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    group_id: Optional[str] = None,
    service: ExpenseService = Depends(get_service),
):
    """Get user's balances with other users"""
    return service.friend_balances(user_id, start, end, group_id)


@app.get("/users/{user_id}/group-balances", response_model=List[GroupBalance])
def get_group_balances(user_id: str, service: ExpenseService = Depends(get_service)):
    """Get user's running balance in each group"""
    return service.group_balances(user_id)


@app.get("/users/{user_id}/dashboard", response_model=Dashboard)
def get_dashboard(user_id: str, service: ExpenseService = Depends(get_service)):
    """Get the balance dashboard for a user"""
    return service.dashboard(user_id)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    init_db()
    uvicorn.run(app, host=API_HOST, port=API_PORT)
