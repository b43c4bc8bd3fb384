# src/storefront/database/seed.py
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.database.models import Category, Product, Inventory, User
from storefront.services.accounts import hash_password

DEMO_CATEGORIES = [
    ("Hardware", "hardware", "Computer components and peripherals"),
    ("Software", "software", "Applications and programs"),
    ("Security", "security", "Cybersecurity tools"),
    ("Networking", "networking", "Network equipment"),
    ("Accessories", "accessories", "Tech accessories and gadgets"),
]

# (name, description, price, category slug, sku, quantity, min_stock, max_stock)
DEMO_PRODUCTS = [
    ("Secure Laptop Pro", "Laptop with hardware encryption", "1299.99", "hardware", "LAP-001", 15, 5, 50),
    ("Enterprise Firewall", "Enterprise-grade firewall", "899.99", "security", "FW-001", 8, 3, 30),
    ("Shielded Network Cable", "Cable with electromagnetic shielding", "45.99", "networking", "CBL-001", 100, 20, 200),
    ("Antivirus Pro", "Real-time protection suite", "79.99", "software", "AV-001", 50, 10, 100),
    ("Mechanical Keyboard", "Keyboard with Cherry MX switches", "149.99", "accessories", "KB-001", 25, 5, 75),
]


def seed_demo_data(session: Session) -> bool:
    """Добавляет демо-каталог и администратора, если база пуста. Возвращает True, если данные добавлены."""
    if session.query(Product).count() > 0:
        return False

    categories = {}
    for name, slug, description in DEMO_CATEGORIES:
        category = Category(name=name, slug=slug, description=description)
        session.add(category)
        categories[slug] = category
    session.flush()

    for name, description, price, slug, sku, quantity, min_stock, max_stock in DEMO_PRODUCTS:
        product = Product(name=name, description=description, price=Decimal(price),
                          category_id=categories[slug].id, sku=sku)
        product.inventory = Inventory(quantity=quantity, min_stock=min_stock, max_stock=max_stock)
        session.add(product)

    if not session.query(User).filter(User.username == 'admin').first():
        session.add(User(username='admin', email='admin@storefront.local', password_hash=hash_password('admin123'),
                         first_name='Store', last_name='Admin', role='admin'))
    session.commit()
    return True
