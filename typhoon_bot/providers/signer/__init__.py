from .nsec_signer import NsecSigner, compute_event_id

__all__ = ['NsecSigner', 'compute_event_id']
