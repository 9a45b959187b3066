"""fuzz-top: екран статусу фазинг-кампанії (htop-подібний, лише читання).

Джерела даних: спільні лічильники кампанії (core.model.campaign),
psutil (командний рядок attached-процесу).

Запуск: python -m fuzz_top [--interval 1] [--config config.json]
"""
