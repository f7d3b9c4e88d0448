# storefront/crud.py
import logging
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

from passlib.context import CryptContext
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    Admin, Cart, CartItem, Category, ContactMessage, Favorite, Inventory,
    Message, Order, Product, PromoCode, Shipping, User, utcnow,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _apply(obj, data: Dict):
    for key, value in data.items():
        setattr(obj, key, value)
    return obj


async def _save(db: AsyncSession, obj):
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


# ---------- passwords ----------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ---------- users ----------
async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    r = await db.execute(select(User).where(User.id == user_id))
    return r.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    r = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return r.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    r = await db.execute(select(User).where(User.username == username))
    return r.scalar_one_or_none()


async def get_user_by_login(db: AsyncSession, login: str) -> Optional[User]:
    """Users may sign in with either their username or their email."""
    if "@" in login:
        return await get_user_by_email(db, login)
    return await get_user_by_username(db, login)


async def create_user(db: AsyncSession, username: str, email: str, password: str, **profile) -> User:
    user = User(username=username, email=email.lower(), password_hash=hash_password(password), **profile)
    return await _save(db, user)


async def update_user(db: AsyncSession, user: User, data: Dict) -> User:
    if "email" in data and data["email"]:
        data = {**data, "email": data["email"].lower()}
    return await _save(db, _apply(user, data))


async def set_user_password(db: AsyncSession, user: User, password: str) -> User:
    user.password_hash = hash_password(password)
    return await _save(db, user)


async def list_users(db: AsyncSession, limit: int = 200) -> List[User]:
    r = await db.execute(select(User).order_by(User.created_at.desc()).limit(limit))
    return r.scalars().all()


async def delete_user(db: AsyncSession, user: User):
    """Removes the account with its carts, favorites and messages. Orders stay, detached."""
    cart_ids = select(Cart.id).where(Cart.user_id == user.id)
    await db.execute(delete(CartItem).where(CartItem.cart_id.in_(cart_ids)))
    await db.execute(delete(Cart).where(Cart.user_id == user.id))
    await db.execute(delete(Favorite).where(Favorite.user_id == user.id))
    await db.execute(delete(Message).where(Message.user_id == user.id))
    await db.execute(update(Order).where(Order.user_id == user.id).values(user_id=None))
    await db.delete(user)
    await db.commit()


# ---------- admins ----------
async def get_admin(db: AsyncSession, admin_id: int) -> Optional[Admin]:
    r = await db.execute(select(Admin).where(Admin.id == admin_id))
    return r.scalar_one_or_none()


async def get_admin_by_username(db: AsyncSession, username: str) -> Optional[Admin]:
    r = await db.execute(select(Admin).where(Admin.username == username))
    return r.scalar_one_or_none()


async def list_admins(db: AsyncSession) -> List[Admin]:
    r = await db.execute(select(Admin).order_by(Admin.id))
    return r.scalars().all()


async def create_admin(db: AsyncSession, username: str, email: str, password: str) -> Admin:
    admin = Admin(username=username, email=email.lower(), password_hash=hash_password(password))
    return await _save(db, admin)


async def admin_exists(db: AsyncSession, username: str, email: str) -> bool:
    q = select(Admin.id).where(or_(Admin.username == username, func.lower(Admin.email) == email.lower()))
    r = await db.execute(q)
    return r.first() is not None


async def validate_admin_login(db: AsyncSession, username: str, password: str) -> Optional[Admin]:
    admin = await get_admin_by_username(db, username)
    if not admin or not verify_password(password, admin.password_hash):
        return None
    return admin


async def update_admin_last_login(db: AsyncSession, admin: Admin) -> Admin:
    admin.last_login = utcnow()
    return await _save(db, admin)


# ---------- categories ----------
async def list_categories(db: AsyncSession) -> List[Category]:
    r = await db.execute(select(Category).order_by(Category.id))
    return r.scalars().all()


async def get_category(db: AsyncSession, category_id: int) -> Optional[Category]:
    r = await db.execute(select(Category).where(Category.id == category_id))
    return r.scalar_one_or_none()


async def get_category_by_slug(db: AsyncSession, slug: str) -> Optional[Category]:
    r = await db.execute(select(Category).where(Category.slug == slug))
    return r.scalar_one_or_none()


async def create_category(db: AsyncSession, data: Dict) -> Category:
    return await _save(db, Category(**data))


async def update_category(db: AsyncSession, category: Category, data: Dict) -> Category:
    return await _save(db, _apply(category, data))


async def category_has_products(db: AsyncSession, category_id: int) -> bool:
    r = await db.execute(select(Product.id).where(Product.category_id == category_id).limit(1))
    return r.first() is not None


async def delete_category(db: AsyncSession, category: Category):
    await db.delete(category)
    await db.commit()


# ---------- products ----------
def _product_query():
    return select(Product, Category).join(Category, Category.id == Product.category_id, isouter=True)


async def list_products(
    db: AsyncSession,
    category_slug: Optional[str] = None,
    q: Optional[str] = None,
    featured: Optional[bool] = None,
    is_new: Optional[bool] = None,
    limit: int = 100,
) -> List[Tuple[Product, Category]]:
    stmt = _product_query()
    if category_slug:
        stmt = stmt.where(Category.slug == category_slug)
    if q:
        like = f"%{q.lower()}%"
        stmt = stmt.where(or_(
            func.lower(Product.name).like(like),
            func.lower(Product.description).like(like),
            func.lower(Product.sku).like(like),
        ))
    if featured is not None:
        stmt = stmt.where(Product.is_featured == featured)
    if is_new is not None:
        stmt = stmt.where(Product.is_new == is_new)
    r = await db.execute(stmt.order_by(Product.id).limit(limit))
    return r.all()


async def get_product(db: AsyncSession, product_id: int) -> Optional[Product]:
    r = await db.execute(select(Product).where(Product.id == product_id))
    return r.scalar_one_or_none()


async def get_product_by_sku(db: AsyncSession, sku: str) -> Optional[Product]:
    r = await db.execute(select(Product).where(Product.sku == sku))
    return r.scalar_one_or_none()


async def get_product_with_category(db: AsyncSession, product_id: int) -> Optional[Tuple[Product, Category]]:
    r = await db.execute(_product_query().where(Product.id == product_id))
    return r.first()


async def get_related_products(db: AsyncSession, product: Product, limit: int = 4) -> List[Tuple[Product, Category]]:
    stmt = (
        _product_query()
        .where(Product.category_id == product.category_id, Product.id != product.id)
        .order_by(Product.is_featured.desc(), Product.id)
        .limit(limit)
    )
    r = await db.execute(stmt)
    return r.all()


async def create_product(db: AsyncSession, data: Dict) -> Product:
    return await _save(db, Product(**data))


async def update_product(db: AsyncSession, product: Product, data: Dict) -> Product:
    return await _save(db, _apply(product, data))


async def delete_product(db: AsyncSession, product: Product):
    await db.execute(delete(CartItem).where(CartItem.product_id == product.id))
    await db.execute(delete(Favorite).where(Favorite.product_id == product.id))
    await db.execute(delete(Inventory).where(Inventory.product_id == product.id))
    await db.delete(product)
    await db.commit()


# ---------- carts ----------
async def get_cart(db: AsyncSession, cart_id: int) -> Optional[Cart]:
    r = await db.execute(select(Cart).where(Cart.id == cart_id))
    return r.scalar_one_or_none()


async def get_cart_by_session(db: AsyncSession, session_id: str) -> Optional[Cart]:
    r = await db.execute(select(Cart).where(Cart.session_id == session_id).order_by(Cart.id).limit(1))
    return r.scalar_one_or_none()


async def get_cart_by_user(db: AsyncSession, user_id: str) -> Optional[Cart]:
    r = await db.execute(select(Cart).where(Cart.user_id == user_id).order_by(Cart.id).limit(1))
    return r.scalar_one_or_none()


async def create_cart(db: AsyncSession, user_id: Optional[str] = None, session_id: Optional[str] = None) -> Cart:
    return await _save(db, Cart(user_id=user_id, session_id=session_id))


async def get_or_create_session_cart(db: AsyncSession, session_id: str) -> Cart:
    cart = await get_cart_by_session(db, session_id)
    if cart:
        return cart
    return await create_cart(db, session_id=session_id)


async def get_or_create_user_cart(db: AsyncSession, user_id: str) -> Cart:
    cart = await get_cart_by_user(db, user_id)
    if cart:
        return cart
    return await create_cart(db, user_id=user_id)


async def get_cart_lines(db: AsyncSession, cart_id: int) -> List[Tuple[CartItem, Product, Category]]:
    stmt = (
        select(CartItem, Product, Category)
        .join(Product, Product.id == CartItem.product_id)
        .join(Category, Category.id == Product.category_id, isouter=True)
        .where(CartItem.cart_id == cart_id)
        .order_by(CartItem.id)
    )
    r = await db.execute(stmt)
    return r.all()


async def get_cart_item(db: AsyncSession, item_id: int) -> Optional[CartItem]:
    r = await db.execute(select(CartItem).where(CartItem.id == item_id))
    return r.scalar_one_or_none()


async def get_cart_item_for_product(db: AsyncSession, cart_id: int, product_id: int) -> Optional[CartItem]:
    q = select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()


async def add_item_to_cart(db: AsyncSession, cart_id: int, product_id: int, qty: int = 1) -> Tuple[CartItem, bool]:
    """Returns (item, created). An existing line for the product grows by qty."""
    existing = await get_cart_item_for_product(db, cart_id, product_id)
    if existing:
        existing.quantity = existing.quantity + qty
        return await _save(db, existing), False
    item = CartItem(cart_id=cart_id, product_id=product_id, quantity=qty)
    return await _save(db, item), True


async def update_cart_item(db: AsyncSession, item: CartItem, qty: int) -> CartItem:
    item.quantity = qty
    return await _save(db, item)


async def remove_cart_item(db: AsyncSession, item: CartItem, qty: Optional[int] = None) -> Optional[CartItem]:
    """
    Remove qty units from a line, or the whole line when qty is None.
    Returns the remaining line, or None once the row is gone.
    """
    if qty is not None and qty < item.quantity:
        item.quantity = item.quantity - qty
        return await _save(db, item)
    await db.delete(item)
    await db.commit()
    return None


async def clear_cart(db: AsyncSession, cart_id: int, commit: bool = True):
    await db.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
    if commit:
        await db.commit()


# ---------- inventory ----------
async def list_inventory(db: AsyncSession, low_only: bool = False) -> List[Tuple[Inventory, Product]]:
    stmt = select(Inventory, Product).join(Product, Product.id == Inventory.product_id)
    if low_only:
        stmt = stmt.where(Inventory.quantity <= Inventory.minimum_stock_level)
    r = await db.execute(stmt.order_by(Inventory.id))
    return r.all()


async def get_inventory(db: AsyncSession, inventory_id: int) -> Optional[Inventory]:
    r = await db.execute(select(Inventory).where(Inventory.id == inventory_id))
    return r.scalar_one_or_none()


async def get_inventory_by_product(db: AsyncSession, product_id: int) -> Optional[Inventory]:
    r = await db.execute(select(Inventory).where(Inventory.product_id == product_id))
    return r.scalar_one_or_none()


async def _sync_product_stock_flag(db: AsyncSession, product_id: int, quantity: int):
    await db.execute(update(Product).where(Product.id == product_id).values(in_stock=quantity > 0))


async def create_inventory(db: AsyncSession, data: Dict) -> Inventory:
    inv = Inventory(**data)
    db.add(inv)
    await _sync_product_stock_flag(db, inv.product_id, inv.quantity or 0)
    await db.commit()
    await db.refresh(inv)
    return inv


async def update_inventory(db: AsyncSession, inv: Inventory, data: Dict) -> Inventory:
    _apply(inv, data)
    await _sync_product_stock_flag(db, inv.product_id, inv.quantity)
    await db.commit()
    await db.refresh(inv)
    return inv


async def set_product_stock(db: AsyncSession, product_id: int, quantity: int) -> Optional[Inventory]:
    """Set the stock count for a product, creating its inventory row if needed. None if no such product."""
    product = await get_product(db, product_id)
    if not product:
        return None
    inv = await get_inventory_by_product(db, product_id)
    if inv is None:
        inv = Inventory(product_id=product_id, quantity=quantity)
        db.add(inv)
    else:
        inv.quantity = quantity
    product.in_stock = quantity > 0
    await db.commit()
    await db.refresh(inv)
    logger.info("[INVENTORY] product=%s stock set to %s", product_id, quantity)
    return inv


async def reserve_stock(db: AsyncSession, product_id: int, qty: int) -> bool:
    """
    Conditional decrement: UPDATE ... WHERE quantity >= :qty.
    Products without an inventory row are not stock-tracked and always succeed.
    Does not commit; the caller owns the transaction.
    """
    inv = await get_inventory_by_product(db, product_id)
    if inv is None:
        return True
    stmt = (
        update(Inventory)
        .where(Inventory.product_id == product_id, Inventory.quantity >= qty)
        .values(quantity=Inventory.quantity - qty)
        .execution_options(synchronize_session=False)
    )
    r = await db.execute(stmt)
    if not r.rowcount:
        logger.info("[INVENTORY] reserve failed product=%s qty=%s (have %s)", product_id, qty, inv.quantity)
        return False
    await db.refresh(inv)
    await _sync_product_stock_flag(db, product_id, inv.quantity)
    return True


async def restock(db: AsyncSession, product_id: int, qty: int):
    """Put qty units back on a tracked product. Does not commit."""
    inv = await get_inventory_by_product(db, product_id)
    if inv is None:
        return
    inv.quantity = inv.quantity + qty
    await _sync_product_stock_flag(db, product_id, inv.quantity)


# ---------- orders & shipping ----------
async def create_order(db: AsyncSession, data: Dict) -> Order:
    """Adds and flushes the order so its id is available. Does not commit."""
    order = Order(**data)
    db.add(order)
    await db.flush()
    return order


async def create_shipping(db: AsyncSession, order_id: int, tracking_number: str,
                          carrier: Optional[str] = None) -> Shipping:
    shipping = Shipping(
        order_id=order_id,
        tracking_number=tracking_number,
        carrier=carrier,
        status="pending",
        history=[history_entry("pending", "warehouse", "Order received")],
    )
    db.add(shipping)
    await db.flush()
    return shipping


async def increment_promo_usage(db: AsyncSession, promo_id: int):
    await db.execute(
        update(PromoCode).where(PromoCode.id == promo_id).values(used_count=PromoCode.used_count + 1)
    )


async def get_order(db: AsyncSession, order_id: int) -> Optional[Order]:
    r = await db.execute(select(Order).where(Order.id == order_id))
    return r.scalar_one_or_none()


async def list_orders(db: AsyncSession, status: Optional[str] = None, limit: int = 200) -> List[Order]:
    q = select(Order)
    if status:
        q = q.where(Order.status == status)
    r = await db.execute(q.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit))
    return r.scalars().all()


async def get_orders_for_user(db: AsyncSession, user_id: str, limit: int = 50) -> List[Order]:
    q = select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
    r = await db.execute(q)
    return r.scalars().all()


async def update_order_status(db: AsyncSession, order: Order, status: str) -> Order:
    order.status = status
    return await _save(db, order)


async def orders_since(db: AsyncSession, since) -> List[Order]:
    r = await db.execute(select(Order).where(Order.created_at >= since).order_by(Order.created_at))
    return r.scalars().all()


async def orders_by_day(db: AsyncSession, days: int = 30) -> List[Dict]:
    """Order count and revenue per calendar day, oldest first, cancelled orders excluded."""
    today = utcnow().date()
    first_day = today - timedelta(days=days - 1)
    buckets = {first_day + timedelta(days=i): {"orders": 0, "revenue": 0} for i in range(days)}
    for order in await orders_since(db, datetime.combine(first_day, time.min)):
        if order.status == "cancelled" or order.created_at is None:
            continue
        bucket = buckets.get(order.created_at.date())
        if bucket is not None:
            bucket["orders"] += 1
            bucket["revenue"] += order.total
    return [{"date": d.isoformat(), **v} for d, v in sorted(buckets.items())]


async def dashboard_summary(db: AsyncSession) -> Dict:
    async def count(model, *where):
        r = await db.execute(select(func.count()).select_from(model).where(*where))
        return r.scalar_one()

    revenue = await db.execute(select(func.coalesce(func.sum(Order.total), 0)).where(Order.status != "cancelled"))
    return {
        "orders": await count(Order),
        "pending_orders": await count(Order, Order.status == "pending"),
        "revenue": int(revenue.scalar_one()),
        "products": await count(Product),
        "users": await count(User),
        "low_stock": await count(Inventory, Inventory.quantity <= Inventory.minimum_stock_level),
        "unread_messages": await count(Message, Message.is_admin.is_(False), Message.is_read.is_(False)),
    }


async def get_shipping_for_order(db: AsyncSession, order_id: int) -> Optional[Shipping]:
    r = await db.execute(select(Shipping).where(Shipping.order_id == order_id))
    return r.scalar_one_or_none()


async def get_shipping(db: AsyncSession, shipping_id: int) -> Optional[Shipping]:
    r = await db.execute(select(Shipping).where(Shipping.id == shipping_id))
    return r.scalar_one_or_none()


async def get_shipping_by_tracking(db: AsyncSession, tracking_number: str) -> Optional[Tuple[Shipping, Order]]:
    q = (
        select(Shipping, Order)
        .join(Order, Order.id == Shipping.order_id)
        .where(Shipping.tracking_number == tracking_number.strip().upper())
    )
    r = await db.execute(q)
    return r.first()


async def list_shipments(db: AsyncSession, status: Optional[str] = None, limit: int = 200) -> List[Tuple[Shipping, Order]]:
    q = select(Shipping, Order).join(Order, Order.id == Shipping.order_id)
    if status:
        q = q.where(Shipping.status == status)
    r = await db.execute(q.order_by(Shipping.id.desc()).limit(limit))
    return r.all()


def history_entry(status: str, location: str, notes: Optional[str] = None) -> Dict:
    entry = {"status": status, "location": location, "timestamp": utcnow().isoformat()}
    if notes:
        entry["notes"] = notes
    return entry


async def update_shipping(db: AsyncSession, shipping: Shipping, data: Dict) -> Shipping:
    """Apply a status change (appending to history) and/or carrier / delivery estimate."""
    status = data.get("status")
    if status:
        entry = history_entry(status, data.get("location") or "", data.get("notes"))
        # reassign so the JSON column is flagged dirty
        shipping.history = [*(shipping.history or []), entry]
        shipping.status = status
    if data.get("carrier") is not None:
        shipping.carrier = data["carrier"]
    if data.get("estimated_delivery") is not None:
        shipping.estimated_delivery = data["estimated_delivery"]
    return await _save(db, shipping)


# ---------- favorites ----------
async def list_favorites(db: AsyncSession, user_id: str) -> List[Tuple[Favorite, Product, Category]]:
    q = (
        select(Favorite, Product, Category)
        .join(Product, Product.id == Favorite.product_id)
        .join(Category, Category.id == Product.category_id, isouter=True)
        .where(Favorite.user_id == user_id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
    )
    r = await db.execute(q)
    return r.all()


async def get_favorite(db: AsyncSession, user_id: str, product_id: int) -> Optional[Favorite]:
    q = select(Favorite).where(Favorite.user_id == user_id, Favorite.product_id == product_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()


async def add_favorite(db: AsyncSession, user_id: str, product_id: int) -> Favorite:
    return await _save(db, Favorite(user_id=user_id, product_id=product_id))


async def remove_favorite(db: AsyncSession, user_id: str, product_id: int) -> bool:
    fav = await get_favorite(db, user_id, product_id)
    if not fav:
        return False
    await db.delete(fav)
    await db.commit()
    return True


# ---------- contact form ----------
async def create_contact_message(db: AsyncSession, data: Dict) -> ContactMessage:
    return await _save(db, ContactMessage(**data))


async def list_contact_messages(db: AsyncSession, limit: int = 200) -> List[ContactMessage]:
    q = select(ContactMessage).order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc()).limit(limit)
    r = await db.execute(q)
    return r.scalars().all()


# ---------- promo codes ----------
async def list_promo_codes(db: AsyncSession) -> List[PromoCode]:
    r = await db.execute(select(PromoCode).order_by(PromoCode.id.desc()))
    return r.scalars().all()


async def get_promo_code(db: AsyncSession, promo_id: int) -> Optional[PromoCode]:
    r = await db.execute(select(PromoCode).where(PromoCode.id == promo_id))
    return r.scalar_one_or_none()


async def get_promo_code_by_code(db: AsyncSession, code: str) -> Optional[PromoCode]:
    r = await db.execute(select(PromoCode).where(PromoCode.code == code.strip().upper()))
    return r.scalar_one_or_none()


async def create_promo_code(db: AsyncSession, data: Dict, admin_id: Optional[int] = None) -> PromoCode:
    promo = PromoCode(**{**data, "code": data["code"].strip().upper()}, created_by=admin_id)
    return await _save(db, promo)


async def update_promo_code(db: AsyncSession, promo: PromoCode, data: Dict) -> PromoCode:
    if data.get("code"):
        data = {**data, "code": data["code"].strip().upper()}
    return await _save(db, _apply(promo, data))


async def delete_promo_code(db: AsyncSession, promo: PromoCode):
    await db.delete(promo)
    await db.commit()


# ---------- order messages ----------
async def create_message(db: AsyncSession, user_id: str, content: str, is_admin: bool = False,
                         order_id: Optional[int] = None, subject: Optional[str] = None,
                         image_url: Optional[str] = None) -> Message:
    msg = Message(
        user_id=user_id,
        order_id=order_id,
        subject=subject,
        content=content,
        image_url=image_url,
        is_admin=is_admin,
        is_read=False,
    )
    return await _save(db, msg)


async def list_messages_for_user(db: AsyncSession, user_id: str, limit: int = 200) -> List[Message]:
    q = select(Message).where(Message.user_id == user_id).order_by(Message.created_at, Message.id).limit(limit)
    r = await db.execute(q)
    return r.scalars().all()


async def list_messages_for_order(db: AsyncSession, order_id: int) -> List[Message]:
    q = select(Message).where(Message.order_id == order_id).order_by(Message.created_at, Message.id)
    r = await db.execute(q)
    return r.scalars().all()


async def list_all_messages(db: AsyncSession, unread_only: bool = False, limit: int = 500) -> List[Message]:
    q = select(Message)
    if unread_only:
        q = q.where(Message.is_admin.is_(False), Message.is_read.is_(False))
    r = await db.execute(q.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit))
    return r.scalars().all()


async def count_unread_for_user(db: AsyncSession, user_id: str) -> int:
    q = select(func.count()).select_from(Message).where(
        Message.user_id == user_id, Message.is_admin.is_(True), Message.is_read.is_(False)
    )
    r = await db.execute(q)
    return r.scalar_one()


async def mark_messages_read(db: AsyncSession, ids: List[int], user_id: Optional[str] = None) -> int:
    """
    Customers (user_id given) can only mark staff messages in their own thread;
    staff (user_id None) mark customer messages.
    """
    stmt = update(Message).where(Message.id.in_(ids), Message.is_read.is_(False))
    if user_id is not None:
        stmt = stmt.where(Message.user_id == user_id, Message.is_admin.is_(True))
    else:
        stmt = stmt.where(Message.is_admin.is_(False))
    r = await db.execute(stmt.values(is_read=True))
    await db.commit()
    return r.rowcount or 0
