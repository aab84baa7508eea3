#!/usr/bin/env python3
"""
ChainClone: clone verified on-chain contracts into local foundry projects.

Main entry point for the CLI interface.
"""

import argparse
import logging
import sys

from cli.main import ChainCloneCLI


def setup_logging(verbose: bool):
    """Setup logging configuration."""
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ChainClone: clone verified on-chain contracts into local foundry projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  chainclone clone 0x35Fb958109b70799a8f9Bc2a8b1Ee4cC62034193 ./bearx
  chainclone clone 0x8B3D32cf2bb4d0D16656f4c0b04Fa546274f1545 ./gov --chain ethereum --commit
  chainclone check-layout ./bearx
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Clone command
    clone_parser = subparsers.add_parser('clone', help='Clone an on-chain contract into a foundry project')
    clone_parser.add_argument('address', help='The contract address to clone')
    clone_parser.add_argument('root', nargs='?', default='.', help='Root directory of the cloned project')
    clone_parser.add_argument('--no-remappings-txt', action='store_true',
                              help='Keep remappings in foundry.toml instead of writing remappings.txt')
    clone_parser.add_argument('--keep-directory-structure', action='store_true',
                              help='Keep the directory structure collected from the explorer')
    clone_parser.add_argument('--chain', help='Network name (see: config --list-networks)')
    clone_parser.add_argument('--etherscan-api-key', help='Etherscan API key (overrides configuration)')
    clone_parser.add_argument('--no-git', action='store_true', help='Do not initialize a git repository')
    clone_parser.add_argument('--shallow', action='store_true', help='Shallow-clone dependencies')
    clone_parser.add_argument('--commit', action='store_true', help='Commit the cloned project')

    # Storage layout check
    check_parser = subparsers.add_parser('check-layout', help='Check storage layout compatibility of a clone')
    check_parser.add_argument('root', nargs='?', default='.', help='Root directory of the cloned project')

    # Config command
    config_parser = subparsers.add_parser('config', help='Manage configuration settings')
    config_parser.add_argument('--set-etherscan-key', help='Set Etherscan API key')
    config_parser.add_argument('--show', action='store_true', help='Show current configuration')
    config_parser.add_argument('--list-networks', action='store_true', help='List supported EVM networks')

    subparsers.add_parser('version', help='Show version information')
    return parser


def main(argv=None):
    """Main entry point for ChainClone CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 1

    cli = ChainCloneCLI()

    try:
        if args.command == 'clone':
            return cli.run_clone(
                args.address,
                args.root,
                chain=args.chain,
                etherscan_api_key=args.etherscan_api_key,
                no_remappings_txt=args.no_remappings_txt,
                keep_directory_structure=args.keep_directory_structure,
                no_git=args.no_git,
                shallow=args.shallow,
                commit=args.commit,
            )
        elif args.command == 'check-layout':
            return cli.run_check_layout(args.root)
        elif args.command == 'config':
            if args.set_etherscan_key:
                cli.config_manager.set_etherscan_key(args.set_etherscan_key)
                return 0
            if args.list_networks:
                cli.list_networks()
                return 0
            if args.show:
                cli.config_manager.show_config()
                return 0
            print("Nothing to do. See: chainclone config --help")
            return 1
        elif args.command == 'version':
            cli.show_version()
            return 0
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1
    except Exception as e:
        print(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
