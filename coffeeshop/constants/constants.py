# Weekday index follows 0=Sunday..6=Saturday; hours are [open, close).
BUSINESS_HOURS = {
    0: {'open': 9, 'close': 20},
    1: {'open': 7, 'close': 21},
    2: {'open': 7, 'close': 21},
    3: {'open': 7, 'close': 21},
    4: {'open': 7, 'close': 21},
    5: {'open': 7, 'close': 21},
    6: {'open': 8, 'close': 20},
}

SLOT_INTERVAL_MINUTES = 15
GRACE_WINDOW_MINUTES = 2
FIRST_SLOT_SKIP_MINUTES = 30
MAX_SLOTS = 100

DEFAULT_CART_TTL_HOURS = 24

ROLE_ADMIN = 'admin'
ROLE_CUSTOMER = 'customer'

ORDER_NUMBER_LENGTH = 8

# Menu categories offered to customers; admin-only ones hold the add-on options
MENU_CATEGORIES = ('Coffee', 'Tea & Other Drinks', 'Pastries', 'Savory Items', 'Seasonal Items')
ADMIN_MENU_CATEGORIES = ('Customizations',)
ALL_ITEMS_CATEGORY = 'All Items'

TOP_ITEMS_LIMIT = 3
WEEKLY_SALES_DAYS = 7
