from clipreceiver.models.instance import AcquireResult, PortReservation, ServiceInstance

__all__ = [
    'AcquireResult',
    'PortReservation',
    'ServiceInstance',
]
