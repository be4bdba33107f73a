# opd_core/notifications/topics.py
"""
Invalidation topics.

A topic carries no payload: subscribers re-query the matching REST projection.
"""

DOCTOR_QUEUE = "doctorQueueUpdate"
LAB_QUEUE = "labQueueUpdate"
PHARMACY_QUEUE = "pharmacyQueueUpdate"
PENDING_APPROVALS = "pendingApprovalsUpdate"
STAFF_LIST = "staffListUpdate"
INVENTORY = "inventoryUpdate"
LAB_TEST_LIST = "labTestListUpdate"
REPORTS = "reportsUpdate"

ALL_TOPICS = (
    DOCTOR_QUEUE,
    LAB_QUEUE,
    PHARMACY_QUEUE,
    PENDING_APPROVALS,
    STAFF_LIST,
    INVENTORY,
    LAB_TEST_LIST,
    REPORTS,
)
