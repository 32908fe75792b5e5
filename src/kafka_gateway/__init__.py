"""
Kafka gateway: an HTTP facade over an aiokafka producer and consumer.

Subpackages:
    dispatch  Request validation/expansion and batch dispatch
    api       aiohttp application and publish routes
    common    Producer, consumer, metrics and transport types
"""
