"""
Clinic Scheduler Tests

Running Tests:
    # Run all tests with pytest
    pytest tests -v

    # Run one module
    pytest tests/unit/test_slot_generator.py -v
"""
