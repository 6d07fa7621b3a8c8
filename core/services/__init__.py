"""
core/services/
Camada de serviços do PingWatch.

Contém lógica de negócio agnóstica à interface:
- reachability : Primitiva de probe ICMP (ping).
- probe_cycle  : Agendador dos ciclos de ping (normal/turbo).
- discovery    : Varredura CIDR com auto-cadastro de hosts.
- naming       : Rótulos adjetivo_substantivo para hosts sem nome.
"""
