"""Kafka client infrastructure shared by the API and the listener.

- MessageProducer: aiokafka producer wrapper used by the publish endpoints
- MessageConsumer: aiokafka consumer wrapper used by the listener
- Transport types and Prometheus metrics

Import classes directly from submodules to avoid loading aiokafka at
package import time:
    from kafka_gateway.common.producer import MessageProducer
    from kafka_gateway.common.consumer import MessageConsumer
"""

__all__: list[str] = []
