"""
core/services/discovery_service.py
Serviço de discovery de hosts por varredura ICMP de uma faixa CIDR.

Agnóstico à interface: a API web consome a sequência de eventos e a
transmite ao cliente.

Protocolo de eventos (um por linha de stream):
    progress  — um por endereço varrido (qualquer resultado)
    host      — um por endereço que respondeu
    complete  — terminal, lista dos hosts encontrados
    error     — terminal, mensagem da falha

Single-flight: apenas uma varredura ativa por processo; um segundo pedido
falha imediatamente com ConflictError. A varredura roda numa thread
própria e sempre libera a trava ao terminar, mesmo que o cliente
desconecte. Falha no probe de um endereço vira "não respondeu"; só falhas
de registro abortam a varredura, e hosts já cadastrados antes disso não
são desfeitos.
"""

from __future__ import annotations

import ipaddress
import queue
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterator, Optional

from core.constants import DISCOVERY_MAX_ADDRESSES, DISCOVERY_PROBE_TIMEOUT_SECONDS
from core.db import epoch_ms
from core.errors import ConflictError, ProbeTimeout, ValidationError
from core.repositories.targets_repository import TargetRegistry
from core.schemas import (
    CompleteEvent,
    DiscoveredHost,
    DiscoveryEvent,
    ErrorEvent,
    HostEvent,
    ProbeReply,
    ProgressEvent,
)
from core.services.naming import generate_host_name
from core.services.reachability_service import Prober, ping_host
from internalloggin.logger import setup_logger

logger = setup_logger(__name__)

_TERMINAL_TYPES = ("complete", "error")


# ── Faixa de endereços ───────────────────────────────────────────────────────


def normalize_network(
    network_input: Optional[str],
    max_addresses: int = DISCOVERY_MAX_ADDRESSES,
) -> ipaddress.IPv4Network:
    """
    Valida a faixa CIDR informada.

    Raises:
        ValidationError: Faixa ausente, malformada, IPv6 ou maior que
            *max_addresses*.
    """
    if not network_input or not str(network_input).strip():
        raise ValidationError("Network range is required")
    try:
        network = ipaddress.ip_network(str(network_input).strip(), strict=False)
    except ValueError as exc:
        raise ValidationError(
            "Faixa de rede inválida. Use CIDR, ex: 192.168.88.0/24"
        ) from exc

    if network.version != 4:
        raise ValidationError("Apenas redes IPv4 são suportadas.")

    if network.num_addresses > max_addresses:
        raise ValidationError(
            f"Faixa muito ampla. Use no máximo {max_addresses} endereços."
        )

    return network


def usable_hosts(network: ipaddress.IPv4Network) -> list[str]:
    """
    Endereços a varrer: o bloco sem os endereços de rede e broadcast.

    Blocos com até 2 endereços (/31, /32) não têm o que excluir e são
    varridos por inteiro.
    """
    if network.num_addresses <= 2:
        return [str(address) for address in network]
    return [
        str(address)
        for address in network
        if address not in (network.network_address, network.broadcast_address)
    ]


# ── Execução ─────────────────────────────────────────────────────────────────


class DiscoveryRun:
    """
    Uma varredura em andamento.

    Os eventos são produzidos pela thread da varredura numa fila; ``events()``
    os entrega em ordem até o evento terminal.
    """

    def __init__(self, network: ipaddress.IPv4Network, addresses: list[str]) -> None:
        self.network = network
        self.addresses = addresses
        self._queue: "queue.Queue[DiscoveryEvent]" = queue.Queue()
        self.done = threading.Event()

    def emit(self, event: DiscoveryEvent) -> None:
        self._queue.put(event)

    def events(self) -> Iterator[DiscoveryEvent]:
        while True:
            event = self._queue.get()
            yield event
            if event.type in _TERMINAL_TYPES:
                return

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.done.wait(timeout)


class DiscoveryScanner:
    """Varredura CIDR single-flight com auto-cadastro dos hosts vivos."""

    def __init__(
        self,
        registry: TargetRegistry,
        prober: Prober = ping_host,
        *,
        probe_timeout: float = DISCOVERY_PROBE_TIMEOUT_SECONDS,
        max_workers: int = 32,
        max_addresses: int = DISCOVERY_MAX_ADDRESSES,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._prober = prober
        self._probe_timeout = probe_timeout
        self._max_workers = max(1, int(max_workers))
        self._max_addresses = max_addresses
        self._rng = rng or random.Random()
        self._clock = clock

        # DiscoveryRunState
        self._active_lock = threading.Lock()
        self._active = False

    @property
    def active(self) -> bool:
        with self._active_lock:
            return self._active

    def start(self, network_input: Optional[str]) -> DiscoveryRun:
        """
        Valida a faixa, ocupa a trava single-flight e dispara a varredura
        em background.

        Raises:
            ValidationError: Faixa ausente ou inválida.
            ConflictError: Outra varredura já está ativa.
        """
        network = normalize_network(network_input, self._max_addresses)
        addresses = usable_hosts(network)

        with self._active_lock:
            if self._active:
                logger.info("Discovery rejeitado: outra varredura em andamento.")
                raise ConflictError("Another discovery is already in progress")
            self._active = True

        run = DiscoveryRun(network, addresses)
        logger.info(
            "Discovery iniciado em %s (%d endereços).", network, len(addresses)
        )
        try:
            worker = threading.Thread(
                target=self._run,
                args=(run,),
                name=f"discovery-{network}",
                daemon=True,
            )
            worker.start()
        except Exception:
            self._release()
            raise
        return run

    def discover(self, network_input: Optional[str]) -> list[DiscoveryEvent]:
        """Executa a varredura e devolve todos os eventos (bloqueante)."""
        return list(self.start(network_input).events())

    # ── Internos ─────────────────────────────────────────

    def _release(self) -> None:
        with self._active_lock:
            self._active = False

    def _run(self, run: DiscoveryRun) -> None:
        try:
            try:
                hosts = self._scan(run)
                terminal: DiscoveryEvent = CompleteEvent(hosts=hosts)
                logger.info(
                    "Discovery concluído em %s: %d endereços, %d hosts vivos.",
                    run.network, len(run.addresses), len(hosts),
                )
            except Exception as exc:  # noqa: BLE001
                logger.exception("Erro durante discovery de %s: %s", run.network, exc)
                terminal = ErrorEvent(message=str(exc) or exc.__class__.__name__)

            # A trava é liberada antes do evento terminal: quem recebe
            # complete/error já pode iniciar outra varredura.
            self._release()
            run.emit(terminal)
        finally:
            self._release()
            run.done.set()

    def _scan(self, run: DiscoveryRun) -> list[DiscoveredHost]:
        total = len(run.addresses)
        if total == 0:
            return []

        scanned = 0
        found: list[DiscoveredHost] = []
        workers = min(self._max_workers, total)

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="discovery-probe"
        ) as pool:
            futures = {
                pool.submit(self._probe, address): address
                for address in run.addresses
            }
            try:
                for future in as_completed(futures):
                    address = futures[future]
                    reply = future.result()
                    scanned += 1

                    host_event = None
                    if reply.alive:
                        host, added = self._enroll(address, reply)
                        found.append(host)
                        host_event = HostEvent(
                            host=host,
                            added_to_targets=added,
                            already_exists=not added,
                        )

                    run.emit(
                        ProgressEvent(
                            scanned=scanned,
                            total=total,
                            found=len(found),
                            current_ip=address,
                            percent=min(round(scanned / total * 100), 100),
                        )
                    )
                    if host_event is not None:
                        run.emit(host_event)
            except BaseException:
                pool.shutdown(wait=False, cancel_futures=True)
                raise

        return sorted(found, key=lambda h: ipaddress.IPv4Address(h.ip))

    def _probe(self, address: str) -> ProbeReply:
        try:
            return self._prober(address, self._probe_timeout)
        except ProbeTimeout:
            return ProbeReply(alive=False)
        except Exception as exc:  # noqa: BLE001
            logger.error("Erro ao pingar %s durante discovery: %s", address, exc)
            return ProbeReply(alive=False)

    def _enroll(self, address: str, reply: ProbeReply) -> tuple[DiscoveredHost, bool]:
        existing = self._registry.get(address)
        if existing is not None:
            logger.info(
                "Host encontrado: %s (%s ms), já cadastrado.", address, reply.latency_ms
            )
            return self._host(address, existing.name, reply), False

        host = self._host(address, generate_host_name(self._rng), reply)
        try:
            self._registry.add(host.ip, host.name, created_at=host.added)
        except ConflictError:
            # Cadastrado manualmente entre a consulta e o insert
            return host, False
        logger.info(
            "Host encontrado: %s (%s ms), cadastrado como %s.",
            address, reply.latency_ms, host.name,
        )
        return host, True

    def _host(self, address: str, name: str, reply: ProbeReply) -> DiscoveredHost:
        return DiscoveredHost(
            ip=address,
            name=name,
            alive=True,
            time=reply.latency_ms,
            added=epoch_ms(self._clock()),
        )
