"""
Classification d'un relevé température / humidité par rapport aux seuils configurés.
Fonction pure, sans effet de bord.
"""

import enum

# Marge fixe au-delà des seuils avant de passer en CRITICAL (non configurable)
CRITICAL_MARGIN = 2


class ReadingStatus(str, enum.Enum):
    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


def classify(temperature, humidity, thresholds) -> ReadingStatus:
    """
    Retourne OK, WARNING ou CRITICAL.

    `thresholds` expose temp_min, temp_max, hum_min, hum_max (ligne
    MonitoringSettings ou schéma de réponse).

    - CRITICAL : une valeur sort des seuils de plus de 2 unités (strictement)
    - WARNING : une valeur sort des seuils
    - OK : les deux valeurs sont dans [min, max]
    """
    t = float(temperature)
    h = float(humidity)
    t_min = float(thresholds.temp_min)
    t_max = float(thresholds.temp_max)
    h_min = float(thresholds.hum_min)
    h_max = float(thresholds.hum_max)

    if (
        t < t_min - CRITICAL_MARGIN
        or t > t_max + CRITICAL_MARGIN
        or h < h_min - CRITICAL_MARGIN
        or h > h_max + CRITICAL_MARGIN
    ):
        return ReadingStatus.CRITICAL

    if t < t_min or t > t_max or h < h_min or h > h_max:
        return ReadingStatus.WARNING

    return ReadingStatus.OK
