from shiftpay.models.payment_record import PaymentRecord
from shiftpay.models.shift import Shift, ShiftStatus
from shiftpay.models.worker import Worker, WorkerRole

__all__ = ["PaymentRecord", "Shift", "ShiftStatus", "Worker", "WorkerRole"]
