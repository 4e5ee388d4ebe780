import os

KDS_QUERY_BACKEND = os.getenv("KDS_QUERY_BACKEND", "kafka")
KDS_CONSUMER_GROUP_PREFIX = os.getenv("KDS_CONSUMER_GROUP_PREFIX", "kitchen-display")
KDS_PREP_AREA = os.getenv("KDS_PREP_AREA", "kitchen")
KDS_EMPTY_TEXT = os.getenv("KDS_EMPTY_TEXT", "Waiting for orders")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
