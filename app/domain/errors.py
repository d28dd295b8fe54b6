class BrokerError(Exception):
    """Base exception for broker errors."""
    pass

class JobNotFoundError(BrokerError):
    def __init__(self, job_id):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id

class JobNotReservedError(BrokerError):
    def __init__(self, job_id):
        super().__init__(f"Job {job_id} is not reserved")
        self.job_id = job_id
