"""
Prometheus metrics exposition helpers.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

proofs_verified = Counter("tlsn_proofs_verified_total", "Total number of presentations that passed verification")
proofs_rejected = Counter("tlsn_proofs_rejected_total", "Total number of rejected presentations", ["kind"])
attestations_issued = Counter("tlsn_attestations_issued_total", "Total number of signed attestations issued")
attestation_failures = Counter("tlsn_attestation_failures_total", "Total number of failed attestations", ["reason"])
verification_seconds = Histogram("tlsn_verification_seconds", "Time spent verifying a presentation")

def metrics_response():
    data = generate_latest()
    return data, CONTENT_TYPE_LATEST
