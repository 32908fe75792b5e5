"""Tests for build_kafka_security_config."""

import ssl

from config.config import KafkaConfig
from kafka_gateway.common.kafka_config import build_kafka_security_config


class TestBuildKafkaSecurityConfig:

    def test_plaintext_returns_empty(self):
        assert build_kafka_security_config(KafkaConfig(bootstrap_servers="b")) == {}

    def test_ssl_creates_context(self):
        result = build_kafka_security_config(KafkaConfig(security_protocol="SSL"))

        assert result["security_protocol"] == "SSL"
        assert isinstance(result["ssl_context"], ssl.SSLContext)
        assert "sasl_mechanism" not in result

    def test_sasl_ssl_plain(self):
        config = KafkaConfig(
            security_protocol="SASL_SSL",
            sasl_mechanism="PLAIN",
            sasl_plain_username="user",
            sasl_plain_password="secret",
        )
        result = build_kafka_security_config(config)

        assert result["sasl_mechanism"] == "PLAIN"
        assert result["sasl_plain_username"] == "user"
        assert result["sasl_plain_password"] == "secret"
        assert "ssl_context" in result

    def test_sasl_plaintext_has_no_ssl_context(self):
        config = KafkaConfig(security_protocol="SASL_PLAINTEXT", sasl_mechanism="SCRAM-SHA-256")
        result = build_kafka_security_config(config)

        assert "ssl_context" not in result
        assert result["sasl_mechanism"] == "SCRAM-SHA-256"

    def test_gssapi(self):
        config = KafkaConfig(
            security_protocol="SASL_PLAINTEXT",
            sasl_mechanism="GSSAPI",
            sasl_kerberos_service_name="kafka-svc",
        )
        result = build_kafka_security_config(config)

        assert result["sasl_kerberos_service_name"] == "kafka-svc"
        assert "sasl_plain_username" not in result
