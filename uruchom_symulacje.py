"""
Symulacja partii Tute rozgrywanych wyłącznie przez boty.

Użycie:
    python uruchom_symulacje.py --games 50 --team-a expert --team-b medium
    python uruchom_symulacje.py --games 10 --seed 7 --verbose
"""
import argparse
import asyncio
import random
import time
from collections import Counter
from typing import Optional

from tqdm import tqdm

from boty_tute import DOSTEPNE_ALGORYTMY
from services.local_game_service import LocalGame


async def rozegraj_partie(poziom_a: str, poziom_b: str, rng: random.Random,
                          cel_rund: int = 3, verbose: bool = False) -> dict:
    """
    Jedna partia: drużyna A (pozycje 0 i 2) kontra drużyna B (pozycje 1 i 3).

    Returns:
        dict: {'zwyciezca': 0/1, 'rundy': wygrane rundy drużyn, 'tute': liczba tute, 'liczba_rund'}
    """
    gra = LocalGame(
        player_name=None,
        bot_levels=[poziom_a, poziom_b, poziom_a, poziom_b],
        think_delay=0,
        cante_delay=0,
        rng=rng,
        trick_delay=0,
        target_rounds=cel_rund,
    )
    await gra.start()
    await gra.wait_idle()

    engine = gra.room.engine
    if not engine.is_terminal():
        await gra.exit_game()
        raise RuntimeError("Partia botów utknęła przed końcem")

    partia = engine.partia
    wynik = {
        'zwyciezca': partia.zwyciezca_partii,
        'rundy': list(partia.wygrane_rundy),
        'tute': sum(1 for r in partia.historia_rund if r.tute),
        'liczba_rund': len(partia.historia_rund),
    }
    if verbose:
        for r in partia.historia_rund:
            print(f"  Runda: punkty {r.punkty[0]}:{r.punkty[1]} -> drużyna {r.zwyciezca}"
                  f"{' (TUTE)' if r.tute else ''}")
    await gra.exit_game()
    return wynik


async def main(liczba_gier: int, poziom_a: str, poziom_b: str, seed: Optional[int], verbose: bool):
    print("\n" + "=" * 60)
    print(f"🎴 TUTE - SYMULACJA: {poziom_a} (A) vs {poziom_b} (B)")
    print("=" * 60)

    rng = random.Random(seed)
    wygrane = Counter()
    rundy = 0
    tute = 0
    start = time.time()

    iterator = range(liczba_gier)
    if not verbose:
        iterator = tqdm(iterator, desc="Partie")

    for i in iterator:
        if verbose:
            print(f"\n--- PARTIA #{i + 1} ---")
        wynik = await rozegraj_partie(poziom_a, poziom_b, rng, verbose=verbose)
        wygrane[wynik['zwyciezca']] += 1
        rundy += wynik['liczba_rund']
        tute += wynik['tute']

    czas = time.time() - start
    print("\n📊 Podsumowanie:")
    print(f"   Drużyna A ({poziom_a}): {wygrane[0]} wygranych ({wygrane[0] / liczba_gier:.0%})")
    print(f"   Drużyna B ({poziom_b}): {wygrane[1]} wygranych ({wygrane[1] / liczba_gier:.0%})")
    print(f"   Średnio rund na partię: {rundy / liczba_gier:.2f}")
    print(f"   Tute: {tute}")
    print(f"   Czas: {czas:.1f}s")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Symulacja partii Tute między botami')
    parser.add_argument('--games', type=int, default=20, help='Liczba partii')
    parser.add_argument('--team-a', choices=DOSTEPNE_ALGORYTMY, default='expert', help='Poziom drużyny A')
    parser.add_argument('--team-b', choices=DOSTEPNE_ALGORYTMY, default='medium', help='Poziom drużyny B')
    parser.add_argument('--seed', type=int, default=None, help='Ziarno losowania (powtarzalne wyniki)')
    parser.add_argument('--verbose', action='store_true', help='Wypisz przebieg każdej rundy')

    args = parser.parse_args()
    asyncio.run(main(args.games, args.team_a, args.team_b, args.seed, args.verbose))
