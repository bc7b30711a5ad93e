"""
Planificateur APScheduler : balayage périodique des alertes de salle.

Le job classe le dernier relevé de chaque salle active avec les seuils courants
et journalise les salles en WARNING ou CRITICAL. Rien n'est persisté : les
tableaux de bord recalculent les statuts à la lecture.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from campusguard.config import settings
from campusguard.database import SessionLocal
from campusguard.services.reading_classifier import ReadingStatus

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _sweep_room_alerts() -> int:
    """
    Tâche planifiée : retourne le nombre de salles en alerte.
    Import local pour éviter les imports circulaires.
    """
    from campusguard.services.monitoring_service import latest_room_readings
    from campusguard.services.settings_service import settings_store

    db = SessionLocal()
    try:
        alerts = 0
        for reading in latest_room_readings(db, settings_store):
            if reading.status == ReadingStatus.OK:
                continue
            alerts += 1
            logger.warning(
                "Alerte %s salle %s (%s) : %.2f °C, %.2f %% à %s",
                reading.status.value,
                reading.room_id,
                reading.room_name,
                reading.temperature,
                reading.humidity,
                reading.measured_at,
            )
        logger.info("Balayage des alertes terminé : %d salle(s) en alerte", alerts)
        return alerts
    except Exception as exc:
        logger.error("Erreur lors du balayage des alertes : %s", exc, exc_info=True)
        return 0
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        _sweep_room_alerts,
        trigger="interval",
        minutes=settings.ALERT_SWEEP_INTERVAL_MINUTES,
        id="room_alert_sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré : balayage des alertes toutes les %d min.", settings.ALERT_SWEEP_INTERVAL_MINUTES)


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
