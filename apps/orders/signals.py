from django.dispatch import Signal

# Sent after an order and its items are committed. Arguments: order
order_created = Signal()

# Sent after a status transition is committed.
# Arguments: order, previous_status, new_status, actor
order_status_changed = Signal()
