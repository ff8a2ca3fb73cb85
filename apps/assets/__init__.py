"""
Assets app: owned bars, purchase invoices, ownership transfers, pickup appointments
and location change requests.
"""
