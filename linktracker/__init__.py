"""Link tracking service: short links, click recording and analytics."""
