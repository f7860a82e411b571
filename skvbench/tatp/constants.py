# Data generation constants
DEFAULT_NUM_SUBSCRIBERS = 100000
DEFAULT_QUERY_COUNT = 100000
DEFAULT_CONCURRENCY = 16
DEFAULT_RETRIES = 3
DEFAULT_ROWS_PER_TXN = 100
DEFAULT_SUBSCRIBERS_PER_PARTITION = 1000

# Transaction weights
TRANSACTION_WEIGHTS = {
    'get_subscriber_data': 35,
    'get_access_data': 35,
    'get_new_destination': 10,
    'update_subscriber_data': 2,
}

TXN_DEADLINE_SECONDS = 5.0

MIN_ACCESS_INFO_PER_SUBSCRIBER = 1
MAX_ACCESS_INFO_PER_SUBSCRIBER = 4
MIN_SPECIAL_FACILITY_PER_SUBSCRIBER = 1
MAX_SPECIAL_FACILITY_PER_SUBSCRIBER = 4
MIN_CALL_FORWARDING_PER_FACILITY = 0
MAX_CALL_FORWARDING_PER_FACILITY = 3

# ai_type, sf_type and call forwarding slots are all drawn from [1, 4]
UNIQUE_ID_DOMAIN = 4

START_TIME_SLOTS = [0, 8, 16]
SUB_NBR_LENGTH = 15

# percentage of special facilities generated inactive
INACTIVE_FACILITY_PCT = 15
