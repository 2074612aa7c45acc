from __future__ import annotations

from flexparse.demo import build_grammar


def main() -> None:
    g = build_grammar()
    print(f"rules: {len(g.rules)} (start: {g.start})")
    for name, rule in g.rules.items():
        print(f"{name}:")
        for alt in rule.alternatives:
            print(f"    | {alt}")
        if rule.fallback is not None:
            print(f"    else {type(rule.fallback).__name__}")


if __name__ == "__main__":
    main()
