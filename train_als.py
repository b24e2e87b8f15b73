"""Train the ranking model from view-event CSVs and save it."""

import argparse
import json
import logging
import os

from productranking import (
    ALSAlgorithm, ALSAlgorithmParams,
    BiMap,
    PreparedData,
    Query,
    aggregate_view_events,
    evaluate_ranking,
    load_prepared_data,
    train_test_split_by_user
)

logger = logging.getLogger("train_als")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("events", help="CSV with user,item columns")
    parser.add_argument("--users", help="CSV with an id column")
    parser.add_argument("--items", help="CSV with an id column")
    parser.add_argument("--params", help="JSON file with rank, numIterations, lambda, seed")
    parser.add_argument("--test-ratio", type=float, default=0.0,
                        help="hold out this share of each user's interactions for evaluation")
    parser.add_argument("--output", default="./data/als_model.npz")
    return parser.parse_args(argv)


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    )
    args = parse_args(argv)

    data = load_prepared_data(args.events, args.users, args.items)

    params = ALSAlgorithmParams()
    if args.params:
        with open(args.params) as f:
            params = ALSAlgorithmParams.from_dict(json.load(f))

    test_interactions = []
    if args.test_ratio > 0:
        # Split at the interaction level, then feed the train part back as events
        user_map = BiMap.string_int(data.users.keys())
        item_map = BiMap.string_int(data.items.keys())
        interactions = aggregate_view_events(data.view_events, user_map, item_map)
        train_interactions, test_interactions = train_test_split_by_user(
            interactions, test_ratio=args.test_ratio
        )
        logger.info(f"Train: {len(train_interactions):,}, Test: {len(test_interactions):,}")

        users = user_map.inverse()
        items = item_map.inverse()
        train_events = [
            (users.lookup(r.user_index), items.lookup(r.item_index))
            for r in train_interactions
            for _ in range(r.weight)
        ]
        data = PreparedData(users=data.users, items=data.items, view_events=train_events)

    algorithm = ALSAlgorithm(params)
    model = algorithm.train(data)
    logger.info(f"Trained model {model}")

    if test_interactions:
        results = evaluate_ranking(model, test_interactions, relevance_threshold=0.0)
        logger.info("Held-out ranking metrics:")
        for name, value in results.items():
            logger.info(f"  {name:16s} {value:.3f}")

    # Show the ranking of a few items for the first known user
    some_user = next(iter(data.users))
    some_items = list(data.items)[:10]
    result = algorithm.predict(model, Query(user=some_user, items=some_items))
    logger.info(f"Ranking for user {some_user} (original order: {result.is_original}):")
    for position, item_score in enumerate(result.item_scores, 1):
        logger.info(f"  {position:2d}. {item_score.item:30s} ({item_score.score:.3f})")

    os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
    model.save(args.output)
    logger.info(f"Model saved to {args.output}")


if __name__ == "__main__":
    main()
