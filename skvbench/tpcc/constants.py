DISTRICTS_PER_WAREHOUSE = 10

# payment amounts, in cents
MIN_PAYMENT_CENTS = 100
MAX_PAYMENT_CENTS = 500000
