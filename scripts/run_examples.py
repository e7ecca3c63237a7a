#!/usr/bin/env python3
"""
Скрипт для запуска примеров использования движка пакетной обработки.
"""

import sys
import argparse
from pathlib import Path


def main():
    """Основная функция скрипта."""
    parser = argparse.ArgumentParser(description="Запуск примеров движка пакетной обработки")
    parser.add_argument(
        "example",
        choices=["basic", "advanced"],
        help="Пример для запуска"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Путь к файлу конфигурации (только для advanced)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Уровень логирования"
    )

    args = parser.parse_args()

    # Каталог examples/ лежит в корне проекта
    sys.path.insert(0, str(Path(__file__).parent.parent))

    try:
        if args.example == "basic":
            from examples import basic_usage
            basic_usage.main(log_level=args.log_level or "WARNING")
        else:
            from examples import advanced_usage
            advanced_usage.main(config_path=args.config, log_level=args.log_level)
    except KeyboardInterrupt:
        print("\nПрервано пользователем")
        return 1
    except Exception as e:
        print(f"Ошибка при выполнении примера {args.example}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
