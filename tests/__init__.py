"""
CareFlow Reminder Service Tests

Unit tests for the appointment reminder pipeline.

Running Tests:
    # Run all tests with pytest
    pytest tests/ -v

    # Run one module
    pytest tests/unit/test_reminder_service.py -v

Test Coverage:
    - Email and SMS transports (Resend / Twilio over httpx)
    - Reminder composer output
    - Reminder dispatch cycle and failure handling
    - Reminder repository against in-memory SQLite
    - Scheduler start/stop lifecycle
    - Health and reminder admin endpoints
"""
