import os

KAFKA_BOOTSTRAP_SERVERS = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
ORDER_SNAPSHOTS_TOPIC = os.getenv("ORDER_SNAPSHOTS_TOPIC", "orders.snapshots")
ORDER_UPDATES_TOPIC = os.getenv("ORDER_UPDATES_TOPIC", "orders.updates")
