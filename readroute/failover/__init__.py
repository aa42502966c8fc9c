from .failover_manager import FailoverManager as FailoverManager
