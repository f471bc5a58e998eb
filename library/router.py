"""Library API router.

Thin translation layer over the engine and services:
- Request bodies validated by pydantic schemas
- Caller identity from CallerMiddleware, checked per route
- Services injected via FastAPI Depends from app.state
- Typed library errors are turned into responses by the app's exception handler
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from api.middleware import Caller, get_current_caller
from library.customers import CustomerService
from library.engine import LoanEngine
from library.favorites import FavoritesService
from library.models.schemas import (
    BookCreate,
    BookUpdate,
    BorrowRequest,
    CustomerCreate,
    FavoriteRequest,
    ReturnRequest,
    StaffCreate,
    StaffUpdate,
    WalkInBorrowRequest,
)
from library.reporting import ReportingService
from library.staff import StaffService

router = APIRouter()


# ============================================================================
# Dependencies
# ============================================================================

def get_loan_engine(request: Request) -> LoanEngine:
    return request.app.state.loan_engine


def get_reporting(request: Request) -> ReportingService:
    return request.app.state.reporting


def get_favorites(request: Request) -> FavoritesService:
    return request.app.state.favorites


def get_customers(request: Request) -> CustomerService:
    return request.app.state.customers


def get_staff(request: Request) -> StaffService:
    return request.app.state.staff


async def require_staff() -> Caller:
    caller = get_current_caller()
    if not caller.is_staff:
        raise HTTPException(status_code=403, detail="Staff access required")
    return caller


async def require_admin() -> Caller:
    caller = get_current_caller()
    if not caller.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return caller


async def require_member() -> Caller:
    caller = get_current_caller()
    if caller.is_staff:
        return caller
    if caller.is_customer and caller.caller_id is not None:
        return caller
    raise HTTPException(status_code=401, detail="Caller identity required")


def ensure_self_or_staff(caller: Caller, customer_id: int) -> None:
    if caller.is_customer and caller.caller_id != customer_id:
        raise HTTPException(status_code=403, detail="Customers may only access their own records")


# ============================================================================
# Book Endpoints
# ============================================================================

@router.get("/books")
async def list_books(
    include_deleted: bool = False,
    reporting: ReportingService = Depends(get_reporting),
):
    """List the catalog; deleted books only on request."""
    books = await reporting.list_books(include_deleted=include_deleted)
    return {"data": books, "count": len(books)}


@router.get("/books/{book_id}")
async def get_book(book_id: int, reporting: ReportingService = Depends(get_reporting)):
    """Get a single book, including a soft-deleted one."""
    return await reporting.get_book(book_id)


@router.post("/books", status_code=201)
async def add_book(
    request: BookCreate,
    _: Caller = Depends(require_staff),
    engine: LoanEngine = Depends(get_loan_engine),
):
    return await engine.add_book(request)


@router.put("/books/{book_id}")
async def update_book(
    book_id: int,
    request: BookUpdate,
    _: Caller = Depends(require_staff),
    engine: LoanEngine = Depends(get_loan_engine),
):
    """Edit a book; copy reductions below the borrowed count are refused."""
    return await engine.update_book(book_id, request)


@router.delete("/books/{book_id}")
async def delete_book(
    book_id: int,
    _: Caller = Depends(require_staff),
    engine: LoanEngine = Depends(get_loan_engine),
):
    """Soft-delete a book nobody is currently holding."""
    deleted = await engine.delete_book(book_id)
    return {"message": "Book deleted", "data": deleted}


@router.get("/books/{book_id}/borrow-status")
async def borrow_status(
    book_id: int,
    _: Caller = Depends(require_staff),
    reporting: ReportingService = Depends(get_reporting),
):
    return await reporting.check_borrow_status(book_id)


# ============================================================================
# Loan Endpoints
# ============================================================================

@router.post("/borrow", status_code=201)
async def borrow_book(
    request: BorrowRequest,
    caller: Caller = Depends(require_member),
    engine: LoanEngine = Depends(get_loan_engine),
):
    """Customers borrow for themselves; staff name the customer."""
    customer_id = caller.caller_id if caller.is_customer else request.customer_id
    if customer_id is None:
        raise HTTPException(status_code=422, detail="customer_id is required")
    loan = await engine.borrow(
        book_id=request.book_id,
        customer_id=customer_id,
        copies=request.copies,
        contact_number=request.contact_number,
    )
    return {"message": "Book borrowed", "data": loan}


@router.post("/walk-in/borrow", status_code=201)
async def walk_in_borrow(
    request: WalkInBorrowRequest,
    _: Caller = Depends(require_staff),
    engine: LoanEngine = Depends(get_loan_engine),
):
    result = await engine.walk_in_borrow(request.book_id, request.customer, request.copies)
    return {"message": "Walk-in borrow recorded", "data": result}


@router.get("/loans")
async def list_all_loans(
    _: Caller = Depends(require_staff),
    reporting: ReportingService = Depends(get_reporting),
):
    loans = await reporting.list_all_loans()
    return {"data": loans, "count": len(loans)}


@router.get("/loans/{customer_id}")
async def list_customer_loans(
    customer_id: int,
    caller: Caller = Depends(require_member),
    reporting: ReportingService = Depends(get_reporting),
):
    ensure_self_or_staff(caller, customer_id)
    loans = await reporting.list_customer_loans(customer_id)
    return {"data": loans, "count": len(loans)}


@router.put("/loans/return/{loan_id}")
async def return_book(
    loan_id: int,
    request: ReturnRequest,
    caller: Caller = Depends(require_member),
    engine: LoanEngine = Depends(get_loan_engine),
    reporting: ReportingService = Depends(get_reporting),
):
    """Customers may only return their own loans; staff may return any."""
    if not caller.is_staff:
        loan = await reporting.get_loan(loan_id)
        ensure_self_or_staff(caller, loan["customer_id"])
    result = await engine.return_loan(
        loan_id=loan_id,
        book_id=request.book_id,
        rating=request.rating,
        copies_borrowed=request.copies_borrowed,
        book_condition=request.book_condition,
    )
    return {"message": "Book returned", "data": result}


# ============================================================================
# Favorites Endpoints
# ============================================================================

@router.post("/favorites/add", status_code=201)
async def add_favorite(
    request: FavoriteRequest,
    caller: Caller = Depends(require_member),
    favorites: FavoritesService = Depends(get_favorites),
):
    ensure_self_or_staff(caller, request.customer_id)
    favorite = await favorites.add_favorite(request.customer_id, request.book_id)
    return {"message": "Added to favorites", "data": favorite}


@router.post("/favorites/toggle")
async def toggle_favorite(
    request: FavoriteRequest,
    caller: Caller = Depends(require_member),
    favorites: FavoritesService = Depends(get_favorites),
):
    ensure_self_or_staff(caller, request.customer_id)
    return await favorites.toggle_favorite(request.customer_id, request.book_id)


@router.delete("/favorites/remove")
async def remove_favorite(
    request: FavoriteRequest = Body(...),
    caller: Caller = Depends(require_member),
    favorites: FavoritesService = Depends(get_favorites),
):
    ensure_self_or_staff(caller, request.customer_id)
    return await favorites.remove_favorite(request.customer_id, request.book_id)


@router.get("/favorites/{customer_id}")
async def list_favorites(
    customer_id: int,
    caller: Caller = Depends(require_member),
    favorites: FavoritesService = Depends(get_favorites),
):
    ensure_self_or_staff(caller, customer_id)
    return await favorites.list_favorites(customer_id)


@router.get("/favorites/{customer_id}/ids")
async def favorite_book_ids(
    customer_id: int,
    caller: Caller = Depends(require_member),
    favorites: FavoritesService = Depends(get_favorites),
):
    ensure_self_or_staff(caller, customer_id)
    return await favorites.favorite_book_ids(customer_id)


# ============================================================================
# Customer & Dashboard Endpoints
# ============================================================================

@router.post("/customers", status_code=201)
async def register_customer(
    request: CustomerCreate,
    customers: CustomerService = Depends(get_customers),
):
    return await customers.register_customer(request)


@router.get("/customers/{customer_id}")
async def get_customer(
    customer_id: int,
    caller: Caller = Depends(require_member),
    customers: CustomerService = Depends(get_customers),
):
    ensure_self_or_staff(caller, customer_id)
    return await customers.get_customer(customer_id)


@router.get("/dashboard")
async def dashboard(
    _: Caller = Depends(require_staff),
    reporting: ReportingService = Depends(get_reporting),
):
    return await reporting.dashboard()


# ============================================================================
# Staff Endpoints (admin only)
# ============================================================================

@router.get("/staff")
async def list_staff(
    _: Caller = Depends(require_admin),
    staff: StaffService = Depends(get_staff),
):
    members = await staff.list_staff()
    return {"data": members, "count": len(members)}


@router.post("/staff", status_code=201)
async def add_staff(
    request: StaffCreate,
    _: Caller = Depends(require_admin),
    staff: StaffService = Depends(get_staff),
):
    member = await staff.add_staff(request)
    return {"message": "Staff member added", "data": member}


@router.put("/staff/{staff_id}")
async def update_staff(
    staff_id: int,
    request: StaffUpdate,
    _: Caller = Depends(require_admin),
    staff: StaffService = Depends(get_staff),
):
    member = await staff.update_staff(staff_id, request)
    return {"message": "Staff member updated", "data": member}


@router.delete("/staff/{staff_id}")
async def delete_staff(
    staff_id: int,
    _: Caller = Depends(require_admin),
    staff: StaffService = Depends(get_staff),
):
    member = await staff.delete_staff(staff_id)
    return {"message": "Staff member deleted", "data": member}
