users_pk = 'users'
users_sk = '{user_id}'

menu_items_pk = 'menu_items'
menu_items_sk = '{menu_item_id}'

carts_pk = 'carts'
carts_sk = '{user_id}'

orders_pk = 'orders'
orders_sk = '{order_id}'

order_lines_pk = 'order_lines_{order_id}'
order_lines_sk = '{line_no:03d}'
