#!/usr/bin/env python3
"""
Socratic Assessor - Main Entry Point

Command-line interface to the assessment pipeline.

Usage:
    # Index course material and generate its summary and rubrics
    python main.py ingest notes.pdf chapter2.docx --title "Calculus I"

    # Ingest, then hold an interactive Socratic session and grade it
    python main.py session notes.pdf --output grade.json
"""
import argparse
import sys
import json
import logging
import tempfile
from typing import List, Optional

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_service(index_dir: str, verbose: bool = False):
    """Wire the pipeline against a Chroma index in index_dir."""
    from config import CHROMA_COLLECTION, EMBEDDING_DIMENSION, EMBEDDING_BACKEND
    from socratic_assessor import ChromaStore, create_assessment_system

    logger.info("Connecting to model capability...")
    dimension = EMBEDDING_DIMENSION if EMBEDDING_BACKEND == "sentence-transformers" else None
    vector_store = ChromaStore(
        persist_directory=index_dir,
        collection_name=CHROMA_COLLECTION,
        dimension=dimension
    )
    return create_assessment_system(vector_store=vector_store, verbose=verbose)


def ingest(service, paths: List[str], title: str) -> dict:
    """
    Index files into a new document, then synthesize its summary and rubrics.

    Returns:
        Dict with the document id and the result of each step
    """
    document = service.add_document(title, paths)
    logger.info(f"Created document {document.id} with {len(document.files)} files")

    results = {'document_id': document.id}

    logger.info("Indexing document...")
    results['indexing'] = service.index_document(document.id)
    if results['indexing']['status'] == "FAILED":
        return results

    logger.info("Generating summary...")
    results['summary'] = service.generate_summary(document.id)

    logger.info("Generating rubrics...")
    results['rubrics'] = service.generate_rubrics(document.id)

    return results


def print_ingest_results(service, results: dict):
    print("\n" + "="*60)
    print("INGESTION RESULTS")
    print("="*60)

    for step in ('indexing', 'summary', 'rubrics'):
        data = results.get(step)
        if data is None:
            continue
        print(f"\n## {step.capitalize()}: {data['status']}")
        for error in data.get('errors', []):
            print(f"  - {error}")

    summary = service.repository.get_summary(results['document_id'])
    if summary:
        print("\n## Summary\n")
        print(summary.content)

    for rubric in service.repository.list_rubrics(results['document_id']):
        print(f"\n### {rubric.concept}")
        print(rubric.levels_summary())


def run_session(service, document_id: str, learner_id: Optional[str] = None) -> Optional[dict]:
    """
    Interactive dialogue loop. '/grade' evaluates and ends the session,
    '/quit' ends it without grading.
    """
    conversation = service.start_conversation(document_id, learner_id)
    print("\nSession started. Answer the evaluator's questions; type /grade to finish or /quit to leave.\n")
    print("Evaluator: What would you like to discuss from this material?")

    while True:
        try:
            text = input("\nYou: ").strip()
        except EOFError:
            text = "/quit"

        if not text:
            continue
        if text == "/quit":
            return None
        if text == "/grade":
            return service.evaluate_conversation(conversation.id)

        reply = service.respond_to_learner(conversation.id, text)
        if reply['status'] == "FAILED" and 'content' not in reply:
            print(f"\n[error] {'; '.join(reply['errors'])}")
            continue
        print(f"\nEvaluator: {reply['content']}")


def print_grade(result: dict):
    print("\n" + "="*60)
    print("GRADE REPORT")
    print("="*60)

    if result['status'] == "FAILED":
        print(f"\nEvaluation failed ({result['error_type']}):")
        for error in result['errors']:
            print(f"  - {error}")
        return

    report = result['grade_report']
    print(f"\nOverall: {report['overall_score']:.2f} ({report['performance_level']})")
    print(f"\n{report['feedback']}")

    print("\n## Concepts")
    for concept, data in report['detailed_scores'].items():
        print(f"- {concept}: {data['level']} ({data['score']:.2f})")

    if report['recommendations']:
        print("\n## Recommendations")
        for recommendation in report['recommendations']:
            print(f"- {recommendation}")


def write_output(path: str, data: dict):
    with open(path, 'w') as f:
        json.dump(data, f, indent=2, default=str)
    logger.info(f"Results saved to: {path}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Socratic Assessor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Index material and print its summary and rubrics
    python main.py ingest notes.pdf --title "Derivatives"

    # Interactive session, saving the grade report
    python main.py session notes.pdf --output grade.json
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    for name, help_text in (('ingest', 'Index material and synthesize rubrics'),
                            ('session', 'Ingest material and run a graded Socratic session')):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('files', nargs='+', help='Course material files (PDF, DOCX, TXT, MD)')
        sub.add_argument('--title', '-t', default='Course material', help='Document title')
        sub.add_argument('--output', '-o', help='Path for output JSON file (optional)')
        sub.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')
        if name == 'session':
            sub.add_argument('--learner', '-l', help='Learner identifier (optional)')

    args = parser.parse_args()

    if args.command not in ('ingest', 'session'):
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    with tempfile.TemporaryDirectory() as tmpdir:
        service = build_service(tmpdir, args.verbose)
        results = ingest(service, args.files, args.title)

        if args.command == 'ingest':
            print_ingest_results(service, results)
            if args.output:
                write_output(args.output, results)
            return

        if 'rubrics' not in results or results['rubrics']['status'] == "FAILED":
            print_ingest_results(service, results)
            sys.exit(1)

        grade = run_session(service, results['document_id'], args.learner)
        if grade is None:
            logger.info("Session ended without grading")
            return

        print_grade(grade)
        if args.output:
            write_output(args.output, grade)


if __name__ == "__main__":
    main()
