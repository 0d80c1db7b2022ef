"""Patient/doctor health records portal API."""
